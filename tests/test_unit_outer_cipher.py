import statistics
import time
import unittest

from chainveil.crypto.aeads import OuterAead, aead_by_name, get_aead_params, list_aeads
from chainveil.crypto.outer_cipher import OuterCipher
from chainveil.exceptions import AuthenticationFailure

KEY = b"\x11" * 32
OTHER_KEY = b"\x22" * 32


class TestUnitOuterCipher(unittest.TestCase):
    def test_roundtrip_each_aead(self):
        for aead in OuterAead:
            with self.subTest(aead=aead.name):
                cipher = OuterCipher(aead)
                nonce = cipher.new_nonce()
                ct = cipher.encrypt(KEY, nonce, b"payload", b"aad")
                self.assertEqual(len(ct), len(b"payload") + cipher.tag_size)
                self.assertEqual(cipher.decrypt(KEY, nonce, ct, b"aad"), b"payload")

    def test_sizes(self):
        cipher = OuterCipher()
        self.assertEqual((cipher.key_size, cipher.nonce_size, cipher.tag_size), (32, 12, 16))
        self.assertEqual(len(cipher.new_nonce()), 12)
        self.assertNotEqual(cipher.new_nonce(), cipher.new_nonce())

    def test_wrong_key_is_authentication_failure(self):
        cipher = OuterCipher()
        nonce = cipher.new_nonce()
        ct = cipher.encrypt(KEY, nonce, b"payload")
        with self.assertRaises(AuthenticationFailure):
            cipher.decrypt(OTHER_KEY, nonce, ct)

    def test_tampering_is_authentication_failure(self):
        cipher = OuterCipher()
        nonce = cipher.new_nonce()
        ct = cipher.encrypt(KEY, nonce, b"payload", b"aad")
        bad_ct = bytearray(ct)
        bad_ct[0] ^= 1
        bad_nonce = bytearray(nonce)
        bad_nonce[-1] ^= 0x80
        with self.assertRaises(AuthenticationFailure):
            cipher.decrypt(KEY, nonce, bytes(bad_ct), b"aad")
        with self.assertRaises(AuthenticationFailure):
            cipher.decrypt(KEY, bytes(bad_nonce), ct, b"aad")
        with self.assertRaises(AuthenticationFailure):
            cipher.decrypt(KEY, nonce, ct, b"other")
        with self.assertRaises(AuthenticationFailure):
            cipher.decrypt(KEY, nonce, ct[:10])

    def test_bad_key_or_nonce_length_is_contract_violation(self):
        cipher = OuterCipher()
        with self.assertRaises(ValueError):
            cipher.encrypt(KEY[:16], cipher.new_nonce(), b"x")
        with self.assertRaises(ValueError):
            cipher.encrypt(KEY, b"\x00" * 24, b"x")

    def test_accepts_bytearray_key(self):
        cipher = OuterCipher()
        nonce = cipher.new_nonce()
        ct = cipher.encrypt(bytearray(KEY), nonce, b"x")
        self.assertEqual(cipher.decrypt(bytearray(KEY), nonce, ct), b"x")

    def test_registry_lookup(self):
        self.assertEqual(aead_by_name("chacha20-poly1305"), OuterAead.CHACHA20_POLY1305)
        self.assertEqual(aead_by_name("AES_256_GCM"), OuterAead.AES_256_GCM)
        self.assertIsNone(get_aead_params(0x9999))
        with self.assertRaisesRegex(ValueError, "ChaCha20-Poly1305"):
            aead_by_name("rot13")

    def test_list_aeads_covers_every_id(self):
        self.assertEqual([p.aead for p in list_aeads()], list(OuterAead))
        for params in list_aeads():
            self.assertEqual(get_aead_params(int(params.aead)), params)
            self.assertEqual(params.key_size, 32)

    def test_tag_mismatch_position_does_not_change_timing(self):
        cipher = OuterCipher()
        nonce = cipher.new_nonce()
        ct = cipher.encrypt(KEY, nonce, b"\x00" * 1024)
        early = bytearray(ct)
        early[-16] ^= 1
        late = bytearray(ct)
        late[-1] ^= 1

        def sample(buf: bytes) -> float:
            times = []
            for _ in range(300):
                start = time.perf_counter()
                try:
                    cipher.decrypt(KEY, nonce, buf)
                except AuthenticationFailure:
                    pass
                times.append(time.perf_counter() - start)
            return statistics.median(times)

        sample(bytes(early))  # warm up
        t_early = sample(bytes(early))
        t_late = sample(bytes(late))
        ratio = max(t_early, t_late) / min(t_early, t_late)
        self.assertLess(ratio, 2.0)


if __name__ == "__main__":
    unittest.main()
