""" Elliptic Curve key pairs and their PEM files.

    Private keys are stored as fixed-width big-endian scalars, public keys
    as SEC1 compressed points.  Both travel to and from disk as PEM. """

import os
import re
import base64
import logging
import binascii
import tempfile
import collections

# PyCryptodome
import Crypto.Random.random
from Crypto.IO import PKCS8
from Crypto.Util.asn1 import (DerSequence, DerObjectId, DerOctetString,
                              DerBitString)

# gmpy2
import gmpy2

from ._version import __version__  # noqa: F401

l = logging.getLogger(__name__)

# Configuration
# #########################################################
DEFAULT_CURVE = 'secp256k1'
PEM_LINE_LENGTH = 64
PEM_EXTENSION = '.pem'

LABEL_PRIVATE_KEY = 'PRIVATE KEY'
LABEL_EC_PRIVATE_KEY = 'EC PRIVATE KEY'
LABEL_PUBLIC_KEY = 'PUBLIC KEY'
PRIVATE_KEY_LABELS = (LABEL_PRIVATE_KEY, LABEL_EC_PRIVATE_KEY)

PRIVKEY_FILE_MODE = 0o600
PUBKEY_FILE_MODE = 0o644

OID_EC_PUBLIC_KEY = '1.2.840.10045.2.1'

# Errors
# #########################################################

class EccPemError(Exception):
    """ Base class of all errors raised by eccpem """

class UnknownCurve(EccPemError, KeyError):
    def __str__(self):
        # KeyError quotes its argument
        return Exception.__str__(self)

class InvalidExtension(EccPemError, ValueError):
    pass

class FileNotFound(EccPemError, IOError):
    pass

class MalformedPem(EccPemError, ValueError):
    pass

class LabelMismatch(MalformedPem):
    pass

class LengthMismatch(EccPemError, ValueError):
    pass

class ScalarTooLarge(EccPemError, ValueError):
    pass

class PointAtInfinity(EccPemError, ValueError):
    pass

class PointNotOnCurve(EccPemError, ValueError):
    pass

class InvalidPrefix(EccPemError, ValueError):
    pass

class WriteFailure(EccPemError, IOError):
    pass

# Serialization of numbers
# #########################################################

def serialize_number(x, outlen=None):
    """ Serializes `x' big-endian to a bytestring of length `outlen'.

        Without `outlen' the shortest representation is returned, which
        is empty for zero. """
    if x < 0:
        raise ScalarTooLarge("Cannot serialize negative number %s" % x)
    ret = b''
    while x:
        x, r = divmod(x, 256)
        ret = bytes((int(r),)) + ret
    if outlen is not None:
        if len(ret) > outlen:
            raise ScalarTooLarge("Number needs %d bytes, only %d available" % (
                                        len(ret), outlen))
        ret = ret.rjust(outlen, b'\0')
    return ret

def deserialize_number(s):
    """ Deserializes a big-endian number from the bytestring `s' """
    if isinstance(s, str):
        raise ValueError("Encode `s` to a bytestring yourself to"+
                         " prevent problems with different default encodings")
    ret = gmpy2.mpz(0)
    for c in bytearray(s):
        ret *= 256
        ret += c
    return ret

def get_serialized_number_len(x):
    return (gmpy2.mpz(x).bit_length() + 7) // 8

# Some modular arithmetic
# #########################################################

def mod_root(a, p):
    """ Returns a root of `a' modulo the prime `p', which must be 3 mod 4.

        Raises ValueError if `a' is not a square. """
    if p % 4 != 3:
        raise ValueError("Only primes congruent to 3 mod 4 are supported")
    a = a % p
    y = gmpy2.powmod(a, (p + 1) // 4, p)
    if (y * y) % p != a:
        raise ValueError("%s is not a square modulo %s" % (a, p))
    return y

# Raw curve parameters
# #########################################################

raw_curve_parameters = collections.namedtuple('raw_curve_parameters',
            ('name', 'aliases', 'oid', 'a', 'b', 'm', 'base_x', 'base_y',
                        'order'))
RAW_CURVES = (
       ("prime192v1", ("secp192r1", "nistp192", "P-192"),
        "1.2.840.10045.3.1.1",
        b"fffffffffffffffffffffffffffffffefffffffffffffffc",
        b"64210519e59c80e70fa7e9ab72243049feb8deecc146b9b1",
        b"fffffffffffffffffffffffffffffffeffffffffffffffff",
        b"188da80eb03090f67cbf20eb43a18800f4ff0afd82ff1012",
        b"07192b95ffc8da78631011ed6b24cdd573f977a11e794811",
        b"ffffffffffffffffffffffff99def836146bc9b1b4d22831"),
       ("prime256v1", ("secp256r1", "nistp256", "P-256"),
        "1.2.840.10045.3.1.7",
        b"ffffffff00000001000000000000000000000000fffffffffffffffffffffffc",
        b"5ac635d8aa3a93e7b3ebbd55769886bc651d06b0cc53b0f63bce3c3e27d2604b",
        b"ffffffff00000001000000000000000000000000ffffffffffffffffffffffff",
        b"6b17d1f2e12c4247f8bce6e563a440f277037d812deb33a0f4a13945d898c296",
        b"4fe342e2fe1a7f9b8ee7eb4a7c0f9e162bce33576b315ececbb6406837bf51f5",
        b"ffffffff00000000ffffffffffffffffbce6faada7179e84f3b9cac2fc632551"),
       ("secp256k1", (),
        "1.3.132.0.10",
        b"0000000000000000000000000000000000000000000000000000000000000000",
        b"0000000000000000000000000000000000000000000000000000000000000007",
        b"fffffffffffffffffffffffffffffffffffffffffffffffffffffffefffffc2f",
        b"79be667ef9dcbbac55a06295ce870b07029bfcdb2dce28d959f2815b16f81798",
        b"483ada7726a3c4655da4fbfc0e1108a8fd17b448a68554199c47d08ffb10d4b8",
        b"fffffffffffffffffffffffffffffffebaaedce6af48a03bbfd25e8cd0364141"),
       ("secp384r1", ("nistp384", "P-384"),
        "1.3.132.0.34",
        b"fffffffffffffffffffffffffffffffffffffffffffffffffffffffffffffffe"+
            b"ffffffff0000000000000000fffffffc",
        b"b3312fa7e23ee7e4988e056be3f82d19181d9c6efe8141120314088f5013875a"+
            b"c656398d8a2ed19d2a85c8edd3ec2aef",
        b"fffffffffffffffffffffffffffffffffffffffffffffffffffffffffffffffe"+
            b"ffffffff0000000000000000ffffffff",
        b"aa87ca22be8b05378eb1c71ef320ad746e1d3b628ba79b9859f741e082542a38"+
            b"5502f25dbf55296c3a545e3872760ab7",
        b"3617de4a96262c6f5d9e98bf9292dc29f8f41dbd289a147ce9da3113b5f0b8c0"+
            b"0a60b1ce1d7e819d7a431d7c90ea0e5f",
        b"ffffffffffffffffffffffffffffffffffffffffffffffffc7634d81f4372ddf"+
            b"581a0db248b0a77aecec196accc52973"),
       ("secp521r1", ("nistp521", "P-521"),
        "1.3.132.0.35",
        b"01ffffffffffffffffffffffffffffffffffffffffffffffffffffffffffffff"+
            b"ffffffffffffffffffffffffffffffffffffffffffffffffffffffffffff"+
            b"fffffffc",
        b"0051953eb9618e1c9a1f929a21a0b68540eea2da725b99b315f3b8b489918ef1"+
            b"09e156193951ec7e937b1652c0bd3bb1bf073573df883d2c34f1ef451fd4"+
            b"6b503f00",
        b"01ffffffffffffffffffffffffffffffffffffffffffffffffffffffffffffff"+
            b"ffffffffffffffffffffffffffffffffffffffffffffffffffffffffffff"+
            b"ffffffff",
        b"00c6858e06b70404e9cd9e3ecb662395b4429c648139053fb521f828af606b4d"+
            b"3dbaa14b5e77efe75928fe1dc127a2ffa8de3348b3c1856a429bf97e7e31"+
            b"c2e5bd66",
        b"011839296a789a3bc0045c8a5fb42c7d1bd998f54449579b446817afbd17273e"+
            b"662c97ee72995ef42640c550b9013fad0761353c7086a272c24088be9476"+
            b"9fd16650",
        b"01ffffffffffffffffffffffffffffffffffffffffffffffffffffffffffffff"+
            b"fffa51868783bf2f966b7fcc0148f709a5d03bb5c9b8899c47aebb6fb71e"+
            b"91386409"),
       ("brainpoolP256r1", (),
        "1.3.36.3.3.2.8.1.1.7",
        b"7d5a0975fc2c3057eef67530417affe7fb8055c126dc5c6ce94a4b44f330b5d9",
        b"26dc5c6ce94a4b44f330b5d9bbd77cbf958416295cf7e1ce6bccdc18ff8c07b6",
        b"a9fb57dba1eea9bc3e660a909d838d726e3bf623d52620282013481d1f6e5377",
        b"8bd2aeb9cb7e57cb2c4b482ffc81b7afb9de27e1e3bd23c23a4453bd9ace3262",
        b"547ef835c3dac4fd97f8461a14611dc9c27745132ded8e545c1d54c72f046997",
        b"a9fb57dba1eea9bc3e660a909d838d718c397aa3b561a6f7901e0e82974856a7"),
       ("brainpoolP384r1", (),
        "1.3.36.3.3.2.8.1.1.11",
        b"7bc382c63d8c150c3c72080ace05afa0c2bea28e4fb22787139165efba91f90f8"+
            b"aa5814a503ad4eb04a8c7dd22ce2826",
        b"04a8c7dd22ce28268b39b55416f0447c2fb77de107dcd2a62e880ea53eeb62d57"+
            b"cb4390295dbc9943ab78696fa504c11",
        b"8cb91e82a3386d280f5d6f7e50e641df152f7109ed5456b412b1da197fb71123a"+
            b"cd3a729901d1a71874700133107ec53",
        b"1d1c64f068cf45ffa2a63a81b7c13f6b8847a3e77ef14fe3db7fcafe0cbd10e8e"+
            b"826e03436d646aaef87b2e247d4af1e",
        b"8abe1d7520f9c2a45cb1eb8e95cfd55262b70b29feec5864e19c054ff99129280"+
            b"e4646217791811142820341263c5315",
        b"8cb91e82a3386d280f5d6f7e50e641df152f7109ed5456b31f166e6cac0425a7c"+
            b"f3ab6af6b7fc3103b883202e9046565"),
       ("brainpoolP512r1", (),
        "1.3.36.3.3.2.8.1.1.13",
        b"7830a3318b603b89e2327145ac234cc594cbdd8d3df91610a83441caea9863bc2"+
            b"ded5d5aa8253aa10a2ef1c98b9ac8b57f1117a72bf2c7b9e7c1ac4d77fc94"+
            b"ca",
        b"3df91610a83441caea9863bc2ded5d5aa8253aa10a2ef1c98b9ac8b57f1117a72"+
            b"bf2c7b9e7c1ac4d77fc94cadc083e67984050b75ebae5dd2809bd638016f7"+
            b"23",
        b"aadd9db8dbe9c48b3fd4e6ae33c9fc07cb308db3b3c9d20ed6639cca703308717"+
            b"d4d9b009bc66842aecda12ae6a380e62881ff2f2d82c68528aa6056583a48"+
            b"f3",
        b"81aee4bdd82ed9645a21322e9c4c6a9385ed9f70b5d916c1b43b62eef4d0098ef"+
            b"f3b1f78e2d0d48d50d1687b93b97d5f7c6d5047406a5e688b352209bcb9f8"+
            b"22",
        b"7dde385d566332ecc0eabfa9cf7822fdf209f70024a57b1aa000c55b881f8111b"+
            b"2dcde494a5f485e5bca4bd88a2763aed1ca2b2fa8f0540678cd1e0f3ad808"+
            b"92",
        b"aadd9db8dbe9c48b3fd4e6ae33c9fc07cb308db3b3c9d20ed6639cca703308705"+
            b"53e5c414ca92619418661197fac10471db1d381085ddaddb58796829ca900"+
            b"69"),
    )
curves = [r[0] for r in RAW_CURVES]

# Arithmetic on elliptic curves
# #########################################################

class JacobianPoint(object):
    def __init__(self, x, y, z, curve):
        self.x = x
        self.y = y
        self.z = z
        self.curve = curve
    def to_affine(self):
        if self.z == 0:
            return AffinePoint(x=0, y=0, curve=self.curve)
        m = self.curve.m
        h = gmpy2.invert(self.z, m)
        y = (h * h) % m
        x = (self.x * y) % m
        y = (y * h) % m
        y = (y * self.y) % m
        return AffinePoint(x=x, y=y, curve=self.curve)
    def double(self):
        if not self.z:
            return self
        if not self.y:
            return JacobianPoint(x=self.x, y=self.y, z=0, curve=self.curve)
        m = self.curve.m
        a = self.curve.a
        t1 = (self.x * self.x) % m
        t2 = (t1 + t1) % m
        t2 = (t2 + t1) % m
        t1 = (self.z * self.z) % m
        t1 = (t1 * t1) % m
        t1 = (t1 * a) % m
        t1 = (t1 + t2) % m
        z = (self.z * self.y) % m
        z = (z + z) % m
        y = (self.y * self.y) % m
        y = (y + y) % m
        t2 = (self.x * y) % m
        t2 = (t2 + t2) % m
        x = (t1 * t1) % m
        x = (x - t2) % m
        x = (x - t2) % m
        t2 = (t2 - x) % m
        t1 = (t1 * t2) % m
        t2 = (y * y) % m
        t2 = (t2 + t2) % m
        y = (t1 - t2) % m
        return JacobianPoint(x=x, y=y, z=z, curve=self.curve)
    def __add__(self, other):
        if not isinstance(other, AffinePoint):
            raise NotImplementedError
        if not other:
            return self
        if not self.z:
            return other.to_jacobian()
        m = self.curve.m
        t1 = (self.z * self.z) % m
        t2 = (t1 * other.x) % m
        t1 = (t1 * self.z) % m
        t1 = (t1 * other.y) % m
        if self.x == t2:
            if self.y == t1:
                return self.double()
            return JacobianPoint(x=self.x, y=self.y, z=0, curve=self.curve)
        x = (self.x - t2) % m
        y = (self.y - t1) % m
        z = (self.z * x) % m
        t3 = (x * x) % m
        t2 = (t2 * t3) % m
        t3 = (t3 * x) % m
        t1 = (t1 * t3) % m
        x = (y * y) % m
        x = (x - t3) % m
        x = (x - t2) % m
        x = (x - t2) % m
        t2 = (t2 - x) % m
        y = (y * t2) % m
        y = (y - t1) % m
        return JacobianPoint(x=x, y=y, z=z, curve=self.curve)

    def __repr__(self):
        return "<JacobianPoint (%s, %s, %s) of %s>" % (
                            self.x, self.y, self.z, self.curve.name)

class AffinePoint(object):
    """ A point on `curve'.  The identity is represented by (0, 0). """
    def __init__(self, x, y, curve):
        self.x = gmpy2.mpz(x)
        self.y = gmpy2.mpz(y)
        self.curve = curve

    @property
    def on_curve(self):
        if not self:
            return True
        m = self.curve.m
        if not (0 <= self.x < m and 0 <= self.y < m):
            return False
        return self.curve.rhs(self.x) == (self.y * self.y) % m
    def to_jacobian(self):
        if not self:
            return JacobianPoint(x=0, y=0, z=0, curve=self.curve)
        return JacobianPoint(x=self.x, y=self.y, z=1, curve=self.curve)
    def __mul__(self, exp):
        exp = gmpy2.mpz(exp)
        n = exp.bit_length()
        r = JacobianPoint(x=0, y=0, z=0, curve=self.curve)
        while n:
            r = r.double()
            n -= 1
            if exp.bit_test(n):
                r = r + self
        R = r.to_affine()
        assert R.on_curve
        return R

    def __bool__(self):
        return bool(self.x or self.y)

    def __repr__(self):
        return "<AffinePoint (%s, %s) of %s>" % (
                            self.x, self.y, self.curve.name)
    def __eq__(self, other):
        if not isinstance(other, AffinePoint):
            return False
        return self.x == other.x and self.y == other.y
    def __ne__(self, other):
        return not (self == other)
    def __hash__(self):
        return hash((int(self.x), int(self.y)))

    def to_bytes(self):
        """ Returns the SEC1 compressed encoding of this point """
        if not self:
            raise PointAtInfinity("The point at infinity has no encoding")
        if not self.on_curve:
            raise PointNotOnCurve("%r is not on the curve" % self)
        prefix = b'\x03' if self.y.bit_test(0) else b'\x02'
        return prefix + serialize_number(self.x, self.curve.elem_len_bin)

# The main Curve objects
# #########################################################
_curve_cache = {}

class Curve(object):
    """ Represents a Elliptic Curve """

    @staticmethod
    def by_name(name):
        """ Looks up a curve by its name or one of its aliases. """
        if not name:
            raise ValueError("Elliptic curve name cannot be empty")
        wanted = name.lower()
        for raw_curve in RAW_CURVES:
            names = (raw_curve[0],) + tuple(raw_curve[1])
            if wanted in [n.lower() for n in names]:
                return Curve._from_raw(raw_curve)
        raise UnknownCurve("Unknown elliptic curve %r; supported are %s" % (
                                name, ', '.join(curves)))
    @staticmethod
    def by_oid(oid):
        for raw_curve in RAW_CURVES:
            if raw_curve[2] == oid:
                return Curve._from_raw(raw_curve)
        raise UnknownCurve("Unsupported elliptic curve (OID %s)" % oid)
    @staticmethod
    def _from_raw(raw_curve):
        name = raw_curve[0]
        if name not in _curve_cache:
            _curve_cache[name] = Curve(raw_curve)
        return _curve_cache[name]

    def __init__(self, raw_curve_params):
        """ Initialize a new curve from raw curve parameters.

            Use `Curve.by_name' instead """
        r = raw_curve_parameters(*raw_curve_params)

        # Store domain parameters
        self.name = r.name
        self.aliases = tuple(r.aliases)
        self.oid = r.oid
        self.a = deserialize_number(binascii.unhexlify(r.a))
        self.b = deserialize_number(binascii.unhexlify(r.b))
        self.m = deserialize_number(binascii.unhexlify(r.m))
        self.order = deserialize_number(binascii.unhexlify(r.order))
        self.base = AffinePoint(curve=self,
                x=deserialize_number(binascii.unhexlify(r.base_x)),
                y=deserialize_number(binascii.unhexlify(r.base_y)))
        assert self.m % 4 == 3

        # Calculate some other parameters
        self.elem_len_bin = get_serialized_number_len(self.m)
        self.pk_len_bin = 1 + self.elem_len_bin

    def __repr__(self):
        return "<Curve %s>" % self.name

    def rhs(self, x):
        """ Returns x^3 + ax + b modulo m """
        m = self.m
        h = (x * x) % m
        h = (h + self.a) % m
        h = (h * x) % m
        h = (h + self.b) % m
        return h

    def point_from_bytes(self, s):
        """ Reads a SEC1 encoded point; compressed or uncompressed """
        s = bytes(s)
        if s[:1] == b'\x04' and len(s) == 1 + 2 * self.elem_len_bin:
            w = self.elem_len_bin
            p = AffinePoint(x=deserialize_number(s[1:1+w]),
                            y=deserialize_number(s[1+w:]), curve=self)
            if not p or not p.on_curve:
                raise PointNotOnCurve("Uncompressed point is not on %s" %
                                            self.name)
            return p
        if len(s) != self.pk_len_bin:
            raise LengthMismatch("Compressed point on %s has %d bytes, got %d"
                                    % (self.name, self.pk_len_bin, len(s)))
        if s[0] not in (2, 3):
            raise InvalidPrefix("Invalid point prefix 0x%02x" % s[0])
        x = deserialize_number(s[1:])
        return self._point_decompress(x, s[0] == 3)
    def pubkey_from_bytes(self, s):
        return PubKey(self.point_from_bytes(s))
    def _point_decompress(self, x, yflag):
        m = self.m
        if x >= m:
            raise PointNotOnCurve("x coordinate exceeds the field of %s" %
                                        self.name)
        try:
            y = mod_root(self.rhs(x), m)
        except ValueError:
            raise PointNotOnCurve("No point on %s has this x coordinate" %
                                        self.name)
        if bool(y.bit_test(0)) == yflag:
            return AffinePoint(x=x, y=y, curve=self)
        if not y:
            raise PointNotOnCurve("The only point with this x coordinate "+
                                        "has an even y")
        return AffinePoint(x=x, y=m - y, curve=self)

    def privkey_from_bytes(self, s):
        """ Reads a private key from its fixed-width serialization """
        if len(s) != self.elem_len_bin:
            raise LengthMismatch("Private key on %s has %d bytes, got %d" % (
                                    self.name, self.elem_len_bin, len(s)))
        return PrivKey(deserialize_number(bytes(s)), self)

    def generate_privkey(self):
        e = gmpy2.mpz(Crypto.Random.random.randrange(1, int(self.order)))
        return PrivKey(e, self)

def _as_curve(curve):
    if isinstance(curve, Curve):
        return curve
    return Curve.by_name(curve)

# Binary codec
# #########################################################

def encode_scalar(d, curve):
    """ Serializes the private scalar `d' to exactly elem_len_bin bytes """
    curve = _as_curve(curve)
    return serialize_number(d, curve.elem_len_bin)

def decode_scalar(s, curve):
    curve = _as_curve(curve)
    if len(s) != curve.elem_len_bin:
        raise LengthMismatch("Expected %d bytes for a %s scalar, got %d" % (
                                curve.elem_len_bin, curve.name, len(s)))
    return int(deserialize_number(bytes(s)))

def encode_point(x, y, curve):
    """ Returns the SEC1 compressed encoding of the point (x, y) """
    curve = _as_curve(curve)
    return AffinePoint(x=x, y=y, curve=curve).to_bytes()

def decode_point(s, curve):
    """ Decompresses the SEC1 compressed point `s' to a tuple (x, y) """
    curve = _as_curve(curve)
    s = bytes(s)
    if len(s) != curve.pk_len_bin:
        raise LengthMismatch("Expected %d bytes for a compressed %s point, "
                    "got %d" % (curve.pk_len_bin, curve.name, len(s)))
    p = curve.point_from_bytes(s)
    return (int(p.x), int(p.y))

# PEM
# #########################################################
PemBlock = collections.namedtuple('PemBlock', ('label', 'payload'))

_PEM_BEGIN = re.compile(r'^-----BEGIN (.*)-----$')
_PEM_END = re.compile(r'^-----END (.*)-----$')

def pem_render(label, payload, line_length=PEM_LINE_LENGTH):
    """ Wraps `payload' in a PEM block labelled `label' """
    if not label or label.splitlines() != [label] or '-----' in label:
        raise ValueError("Invalid PEM label %r" % label)
    b64 = base64.b64encode(bytes(payload)).decode('ascii')
    lines = ['-----BEGIN %s-----' % label]
    for i in range(0, len(b64), line_length):
        lines.append(b64[i:i+line_length])
    lines.append('-----END %s-----' % label)
    return '\n'.join(lines) + '\n'

def pem_parse(text, label=None):
    """ Returns a PemBlock from `text'.

        Without `label' the first block is returned.  With `label' (a
        string or a tuple of strings) blocks with other labels, such as
        the EC PARAMETERS block `openssl ecparam -genkey' writes, are
        skipped; LabelMismatch is raised if no block carries `label'. """
    if isinstance(text, (bytes, bytearray)):
        try:
            text = bytes(text).decode('ascii')
        except UnicodeDecodeError:
            raise MalformedPem("PEM data must be ASCII")
    accepted = None
    if label is not None:
        accepted = (label,) if isinstance(label, str) else tuple(label)
    skipped = []
    found, body = None, []
    for line in text.splitlines():
        line = line.strip()
        if found is None:
            m = _PEM_BEGIN.match(line)
            if m:
                found, body = m.group(1), []
            continue
        m = _PEM_END.match(line)
        if m:
            if m.group(1) != found:
                raise MalformedPem("BEGIN %s closed by END %s" % (
                                        found, m.group(1)))
            if accepted is None or found in accepted:
                break
            l.debug("skipping PEM block %s", found)
            skipped.append(found)
            found = None
            continue
        body.append(line)
    else:
        if found is not None:
            raise MalformedPem("No PEM END marker found for %s" % found)
        if skipped:
            raise LabelMismatch("Expected PEM label %s, found %s" % (
                        ' or '.join(accepted), ', '.join(skipped)))
        raise MalformedPem("No PEM BEGIN marker found")
    try:
        payload = base64.b64decode(''.join(body), validate=True)
    except (binascii.Error, ValueError) as e:
        raise MalformedPem("Invalid base64 in PEM block %s: %s" % (found, e))
    return PemBlock(found, payload)

def is_pem_path(path):
    if path is None:
        return False
    return os.fspath(path).endswith(PEM_EXTENSION)

def check_pem_path(path):
    """ Raises InvalidExtension unless `path' names a .pem file """
    if path is None:
        raise InvalidExtension("Key file path cannot be None, it must be "+
                               "PEM format")
    if not is_pem_path(path):
        raise InvalidExtension("Key file %s must be PEM format (extension "
                               "is %s)" % (os.fspath(path), PEM_EXTENSION))

# Keys
# #########################################################

class PubKey(object):
    """ A public affine point """
    def __init__(self, p):
        self.p = p

    @property
    def curve(self):
        return self.p.curve

    def to_bytes(self):
        return self.p.to_bytes()
    def to_der(self):
        """ Returns a SubjectPublicKeyInfo with the compressed point """
        algorithm = DerSequence([DerObjectId(OID_EC_PUBLIC_KEY),
                                 DerObjectId(self.curve.oid)])
        return DerSequence([algorithm, DerBitString(self.to_bytes())]).encode()
    def to_pem(self):
        return pem_render(LABEL_PUBLIC_KEY, self.to_der())

    def __eq__(self, other):
        return isinstance(other, PubKey) and self.p == other.p
    def __ne__(self, other):
        return not (self == other)
    def __hash__(self):
        return hash(self.p)
    def __str__(self):
        return binascii.hexlify(self.to_bytes()).decode('ascii')
    def __repr__(self):
        return "<PubKey %s on %s>" % (self, self.curve.name)

class PrivKey(object):
    """ A secret exponent """
    def __init__(self, e, curve):
        e = gmpy2.mpz(e)
        if not 0 < e < curve.order:
            raise ValueError("Private exponent out of range for %s" %
                                    curve.name)
        self.e = e
        self.curve = curve
        self._pubkey = None

    @property
    def pubkey(self):
        if self._pubkey is None:
            self._pubkey = PubKey(self.curve.base * self.e)
        return self._pubkey

    def to_bytes(self):
        return encode_scalar(self.e, self.curve)
    def to_der(self, label=LABEL_PRIVATE_KEY):
        """ Returns the DER structure that goes in a PEM block `label' """
        if label == LABEL_EC_PRIVATE_KEY:
            return self._ec_private_key_der(include_params=True)
        if label == LABEL_PRIVATE_KEY:
            return PKCS8.wrap(self._ec_private_key_der(include_params=False),
                              OID_EC_PUBLIC_KEY,
                              key_params=DerObjectId(self.curve.oid))
        raise LabelMismatch("Private keys are stored as %s" %
                                ' or '.join(PRIVATE_KEY_LABELS))
    def to_pem(self, label=LABEL_PRIVATE_KEY):
        return pem_render(label, self.to_der(label))
    def _ec_private_key_der(self, include_params):
        seq = [1, DerOctetString(self.to_bytes())]
        if include_params:
            seq.append(DerObjectId(self.curve.oid, explicit=0))
        seq.append(DerBitString(self.pubkey.to_bytes(), explicit=1))
        return DerSequence(seq).encode()

    def __eq__(self, other):
        return (isinstance(other, PrivKey) and self.e == other.e and
                    self.curve is other.curve)
    def __ne__(self, other):
        return not (self == other)
    def __hash__(self):
        return hash((int(self.e), self.curve.name))
    def __repr__(self):
        # Never show the exponent
        return "<PrivKey on %s>" % self.curve.name

def _privkey_from_ec_private_key_der(der, curve=None):
    try:
        seq = DerSequence().decode(der, nr_elements=(2, 3, 4))
        if seq[0] != 1:
            raise ValueError("Unsupported ECPrivateKey version %s" % seq[0])
        scalar = DerOctetString().decode(seq[1]).payload
        oid = None
        for i in range(2, len(seq)):
            element = seq[i]
            if bytearray(element)[:1] == b'\xa0':
                oid = DerObjectId(explicit=0).decode(element).value
    except (ValueError, TypeError, IndexError) as e:
        raise MalformedPem("Invalid ECPrivateKey structure: %s" % e)
    if oid is not None:
        if curve is not None and curve.oid != oid:
            raise MalformedPem("Curve parameters disagree (%s, %s)" % (
                                        curve.oid, oid))
        curve = Curve.by_oid(oid)
    if curve is None:
        raise MalformedPem("Private key does not name its curve")
    e = decode_scalar(scalar, curve)
    if not 0 < e < curve.order:
        raise MalformedPem("Private exponent out of range for %s" %
                                curve.name)
    return PrivKey(e, curve)

def privkey_from_der(der, label=LABEL_PRIVATE_KEY):
    if label == LABEL_EC_PRIVATE_KEY:
        return _privkey_from_ec_private_key_der(der)
    if label != LABEL_PRIVATE_KEY:
        raise LabelMismatch("Not a private key: %s" % label)
    try:
        algo_oid, private_key, params = PKCS8.unwrap(der)
        if algo_oid != OID_EC_PUBLIC_KEY:
            raise ValueError("Not an elliptic curve key (OID %s)" % algo_oid)
        if params is None:
            raise ValueError("Missing elliptic curve parameters")
        curve_oid = DerObjectId().decode(params).value
    except (ValueError, TypeError, IndexError) as e:
        raise MalformedPem("Invalid PKCS#8 structure: %s" % e)
    return _privkey_from_ec_private_key_der(private_key,
                                            Curve.by_oid(curve_oid))

def pubkey_from_der(der):
    try:
        spki = DerSequence().decode(der, nr_elements=2)
        algorithm = DerSequence().decode(spki[0], nr_elements=2)
        algo_oid = DerObjectId().decode(algorithm[0]).value
        if algo_oid != OID_EC_PUBLIC_KEY:
            raise ValueError("Not an elliptic curve key (OID %s)" % algo_oid)
        curve_oid = DerObjectId().decode(algorithm[1]).value
        point = DerBitString().decode(spki[1]).value
    except (ValueError, TypeError, IndexError) as e:
        raise MalformedPem("Invalid SubjectPublicKeyInfo: %s" % e)
    return Curve.by_oid(curve_oid).pubkey_from_bytes(point)

def privkey_from_pem(text):
    block = pem_parse(text, PRIVATE_KEY_LABELS)
    return privkey_from_der(block.payload, block.label)

def pubkey_from_pem(text):
    block = pem_parse(text, LABEL_PUBLIC_KEY)
    return pubkey_from_der(block.payload)

def generate_keypair(curve=DEFAULT_CURVE):
    """ Generates a new private key on `curve'; its public key is at
        `.pubkey' """
    curve = _as_curve(curve)
    privkey = curve.generate_privkey()
    l.debug("generated %r", privkey)
    return privkey

# Files
# #########################################################

def _stage_file(path, data, mode):
    """ Writes `data' to a new temporary file next to `path' and returns
        the temporary file's name. """
    directory = os.path.dirname(os.path.abspath(path))
    fd, tmp_path = tempfile.mkstemp(prefix='.eccpem-', suffix='.tmp',
                                    dir=directory)
    try:
        with os.fdopen(fd, 'w') as f:
            f.write(data)
            f.flush()
            os.fsync(f.fileno())
        os.chmod(tmp_path, mode)
    except BaseException:
        os.unlink(tmp_path)
        raise
    l.debug("staged %s as %s", path, tmp_path)
    return tmp_path

def _unlink_quietly(path):
    try:
        os.unlink(path)
    except OSError as e:
        l.warning("could not remove %s: %s", path, e)

def create_keys_pem_files(curve, pubkey_path, privkey_path,
                          privkey_label=LABEL_PRIVATE_KEY):
    """ Generates a key pair on `curve' and writes it to the PEM files
        `pubkey_path' and `privkey_path', replacing existing files.

        Either both files are written completely or neither is. """
    if not curve:
        raise ValueError("Elliptic curve name cannot be empty; supported "+
                         "are %s" % ', '.join(curves))
    check_pem_path(pubkey_path)
    check_pem_path(privkey_path)
    if privkey_label not in PRIVATE_KEY_LABELS:
        raise ValueError("Invalid private key label %r" % privkey_label)
    curve = _as_curve(curve)
    l.debug("resolved curve %s", curve.name)

    privkey = generate_keypair(curve)
    privkey_pem = privkey.to_pem(privkey_label)
    pubkey_pem = privkey.pubkey.to_pem()

    pubkey_path = os.fspath(pubkey_path)
    privkey_path = os.fspath(privkey_path)
    staged = []
    placed = None
    try:
        staged.append(_stage_file(privkey_path, privkey_pem,
                                  PRIVKEY_FILE_MODE))
        staged.append(_stage_file(pubkey_path, pubkey_pem,
                                  PUBKEY_FILE_MODE))
        os.replace(staged[0], privkey_path)
        placed = privkey_path
        os.replace(staged[1], pubkey_path)
        placed = None
    except OSError as e:
        for tmp_path in staged:
            if os.path.exists(tmp_path):
                _unlink_quietly(tmp_path)
        if placed is not None:
            l.warning("removing %s: its public key could not be written",
                      placed)
            _unlink_quietly(placed)
        raise WriteFailure("Writing key pair to %s and %s failed: %s" % (
                                pubkey_path, privkey_path, e))
    l.debug("wrote %s and %s", pubkey_path, privkey_path)
    return privkey

def _read_pem_file(path):
    try:
        with open(path, 'rb') as f:
            data = f.read()
    except OSError as e:
        raise FileNotFound("Unable to open %s or it does not exist: %s" % (
                                os.fspath(path), e))
    l.debug("read %s", os.fspath(path))
    return data

def _check_size(size, what):
    if size is None or size <= 0:
        raise ValueError("%s size must be positive, got %r" % (what, size))

def read_private_key_pem_file(path, key_size):
    """ Reads the private key in the PEM file `path' and returns its
        scalar as `key_size' bytes.

        `key_size' has to match the curve of the key, e.g. 32 for
        prime256v1 and secp256k1. """
    check_pem_path(path)
    _check_size(key_size, "Private key")
    privkey = privkey_from_pem(_read_pem_file(path))
    if key_size != privkey.curve.elem_len_bin:
        raise LengthMismatch("Private key on %s has %d bytes, asked for %d" % (
                    privkey.curve.name, privkey.curve.elem_len_bin, key_size))
    return privkey.to_bytes()

def read_public_key_pem_file(path, compressed_key_size):
    """ Reads the public key in the PEM file `path' and returns it
        as a compressed point of `compressed_key_size' bytes.

        `compressed_key_size' has to match the curve of the key, e.g. 33
        for prime256v1 and secp256k1. """
    check_pem_path(path)
    _check_size(compressed_key_size, "Compressed public key")
    pubkey = pubkey_from_pem(_read_pem_file(path))
    if compressed_key_size != pubkey.curve.pk_len_bin:
        raise LengthMismatch("Compressed public key on %s has %d bytes, "
                    "asked for %d" % (pubkey.curve.name,
                                      pubkey.curve.pk_len_bin,
                                      compressed_key_size))
    return pubkey.to_bytes()
