"""
Numeric QR encoding tests.
"""

import unittest

from qrcode.util import MODE_8BIT_BYTE, MODE_NUMBER

from shcgen import chunk_token, decode_numeric, encode_chunks, encode_numeric, render_svg, resolve_parameters
from shcgen.qr import build_qr_code, encode_char

B64URL_ALPHABET = "ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz0123456789-_"


class TestNumericEncoding(unittest.TestCase):

    def test_known_values(self):
        self.assertEqual(encode_char("-"), "00")
        self.assertEqual(encode_char("."), "01")
        self.assertEqual(encode_char("z"), "77")
        self.assertEqual(encode_numeric("eyJ"), "567629")

    def test_alphabet_range(self):
        codes = [int(encode_char(c)) for c in B64URL_ALPHABET + "."]
        self.assertEqual(min(codes), 0)
        self.assertEqual(max(codes), 77)

    def test_two_digits_per_character(self):
        chunk = "eyJ6aXAiOiJERUYi.abc_-"
        digits = encode_numeric(chunk)
        self.assertEqual(len(digits), 2 * len(chunk))
        self.assertTrue(digits.isdigit())
        self.assertEqual(decode_numeric(digits), chunk)

    def test_out_of_alphabet(self):
        with self.assertRaises(ValueError):
            encode_char(" ")

    def test_odd_digit_count(self):
        with self.assertRaises(ValueError):
            decode_numeric("567")


class TestSegments(unittest.TestCase):

    def test_single_chunk_header(self):
        [qr] = encode_chunks(["eyJ"])
        self.assertEqual(qr.header.data, "shc:/")
        self.assertEqual(qr.numeric_string(), "shc:/567629")

    def test_multi_chunk_headers(self):
        qrs = encode_chunks(["eyJ", "abc"])
        self.assertEqual([q.header.data for q in qrs], ["shc:/1/2/", "shc:/2/2/"])

    def test_headers_at_capacity_boundary(self):
        [single] = encode_chunks(chunk_token("a" * 1195))
        self.assertEqual(single.header.data, "shc:/")

        pair = encode_chunks(chunk_token("a" * 1196))
        self.assertEqual([q.header.data for q in pair], ["shc:/1/2/", "shc:/2/2/"])

    def test_wrong_header(self):
        [qr] = encode_chunks(["eyJ"], resolve_parameters("wrong_qr_header"))
        self.assertEqual(qr.numeric_string(), "shc:567629")

    def test_body_mode(self):
        [qr] = encode_chunks(["eyJ"])
        code = build_qr_code(qr)
        self.assertEqual(code.data_list[0].mode, MODE_8BIT_BYTE)
        self.assertEqual(code.data_list[1].mode, MODE_NUMBER)

    def test_wrong_body_mode(self):
        [qr] = encode_chunks(["eyJ"], resolve_parameters("wrong_qr_mode"))
        code = build_qr_code(qr)
        self.assertEqual(code.data_list[1].mode, MODE_8BIT_BYTE)
        self.assertEqual(qr.numeric_string(), "shc:/567629")

    def test_render_svg(self):
        [qr] = encode_chunks(["eyJ"])
        svg = render_svg(qr)
        self.assertIn("<svg", svg)
        self.assertIn("svg>", svg.rstrip()[-8:])


if __name__ == "__main__":
    unittest.main()
