import os
import unittest

import eccpem

class TestPem(unittest.TestCase):
    def test_render_layout(self):
        text = eccpem.pem_render('TEST', b'\0' * 49)
        lines = text.split('\n')
        self.assertEqual(lines[0], '-----BEGIN TEST-----')
        self.assertEqual(lines[1], 'A' * 64)
        self.assertEqual(lines[2], 'AA==')
        self.assertEqual(lines[3], '-----END TEST-----')
        self.assertEqual(lines[4], '')
        self.assertTrue(text.endswith('\n'))

    def test_render_exact_line(self):
        text = eccpem.pem_render('TEST', b'\xff' * 48)
        self.assertEqual(text, '-----BEGIN TEST-----\n' + '/' * 64 +
                                    '\n-----END TEST-----\n')

    def test_round_trip(self):
        payloads = [b'', b'\0', b'\x01\x02\x03', bytes(range(256)),
                    os.urandom(1000)]
        for label in ('PUBLIC KEY', 'EC PRIVATE KEY', 'X'):
            for payload in payloads:
                self.assertEqual(eccpem.pem_parse(
                        eccpem.pem_render(label, payload)), (label, payload))

    def test_parse_bytes_and_surroundings(self):
        text = ('Some comment\r\n' +
                eccpem.pem_render('DATA', b'hello').replace('\n', '\r\n') +
                'trailing garbage\n').encode('ascii')
        block = eccpem.pem_parse(text)
        self.assertEqual(block.label, 'DATA')
        self.assertEqual(block.payload, b'hello')

    def test_first_block_wins(self):
        text = (eccpem.pem_render('ONE', b'1') +
                    eccpem.pem_render('TWO', b'2'))
        self.assertEqual(eccpem.pem_parse(text), ('ONE', b'1'))

    def test_label_skips_other_blocks(self):
        # Layout of `openssl ecparam -genkey -name prime256v1'
        params = bytes.fromhex('06082a8648ce3d030107')
        text = (eccpem.pem_render('EC PARAMETERS', params) +
                    eccpem.pem_render('EC PRIVATE KEY', b'key'))
        self.assertEqual(eccpem.pem_parse(text, 'EC PRIVATE KEY'),
                            ('EC PRIVATE KEY', b'key'))
        self.assertEqual(eccpem.pem_parse(text, eccpem.PRIVATE_KEY_LABELS),
                            ('EC PRIVATE KEY', b'key'))
        self.assertEqual(eccpem.pem_parse(text), ('EC PARAMETERS', params))
        self.assertRaises(eccpem.LabelMismatch, eccpem.pem_parse, text,
                            'PUBLIC KEY')
        broken = text.replace('-----END EC PRIVATE KEY-----', '')
        self.assertRaises(eccpem.MalformedPem, eccpem.pem_parse, broken,
                            'EC PRIVATE KEY')

    def test_label(self):
        text = eccpem.pem_render('PUBLIC KEY', b'x')
        self.assertEqual(eccpem.pem_parse(text, 'PUBLIC KEY').payload, b'x')
        self.assertEqual(eccpem.pem_parse(text, ('A', 'PUBLIC KEY')).label,
                            'PUBLIC KEY')
        self.assertRaises(eccpem.LabelMismatch, eccpem.pem_parse, text,
                            'PRIVATE KEY')
        self.assertRaises(eccpem.MalformedPem, eccpem.pem_parse, text,
                            eccpem.PRIVATE_KEY_LABELS)

    def test_malformed(self):
        good = eccpem.pem_render('KEY', b'some payload!')
        for text in (
                    '',
                    'no markers at all',
                    good.replace('-----BEGIN KEY-----', ''),
                    good.replace('-----END KEY-----', ''),
                    good.replace('-----END KEY-----', '-----END OTHER-----'),
                    good.replace('c29t', 'c2*t'),
                    good.replace('=', ''),
                    b'\xff\xfe' + good.encode('ascii')):
            self.assertRaises(eccpem.MalformedPem, eccpem.pem_parse, text)

    def test_invalid_label(self):
        for label in ('', 'A\nB', 'A\rB', 'A\x0bB', 'A\u2028B', '-----'):
            self.assertRaises(ValueError, eccpem.pem_render, label, b'')

    def test_pem_path(self):
        self.assertTrue(eccpem.is_pem_path('key.pem'))
        self.assertTrue(eccpem.is_pem_path('/some/dir/key.pem'))
        self.assertFalse(eccpem.is_pem_path('key.txt'))
        self.assertFalse(eccpem.is_pem_path('key.pem.bak'))
        self.assertFalse(eccpem.is_pem_path('key.PEM'))
        self.assertFalse(eccpem.is_pem_path('key'))
        self.assertFalse(eccpem.is_pem_path(None))
        eccpem.check_pem_path('key.pem')
        for path in ('key.txt', 'key', None):
            self.assertRaises(eccpem.InvalidExtension,
                                eccpem.check_pem_path, path)

if __name__ == '__main__':
    unittest.main()
