import threading
import unittest

from chainveil.chain.header import BlockHeader
from chainveil.chain.window import HeaderWindow
from chainveil.exceptions import ConfigurationError, NoHeaderAvailable
from tests.helpers import make_chain


class TestUnitBlockHeader(unittest.TestCase):
    def test_rejects_wrong_length_hashes(self):
        with self.assertRaises(ValueError):
            BlockHeader(hash=b"\x00" * 31, prev_hash=b"\x00" * 32, height=1, timestamp=0)
        with self.assertRaises(ValueError):
            BlockHeader(hash=b"\x00" * 32, prev_hash=b"\x00" * 33, height=1, timestamp=0)

    def test_rejects_out_of_range_integers(self):
        with self.assertRaises(ValueError):
            BlockHeader(hash=b"\x01" * 32, prev_hash=b"\x00" * 32, height=-1, timestamp=0)
        with self.assertRaises(ValueError):
            BlockHeader(hash=b"\x01" * 32, prev_hash=b"\x00" * 32, height=1, timestamp=2**64)

    def test_from_hex_and_equality_ignores_observed_at(self):
        h = make_chain(1)[0]
        again = BlockHeader.from_hex(h.hash_hex, h.prev_hash.hex(), h.height, h.timestamp)
        self.assertEqual(h, again)
        self.assertEqual(again.hash, h.hash)


class TestUnitHeaderWindow(unittest.TestCase):
    def test_empty_window_has_no_current(self):
        window = HeaderWindow()
        with self.assertRaises(NoHeaderAvailable):
            window.current()
        self.assertEqual(window.candidates_for_decode(), ())
        self.assertEqual(len(window), 0)

    def test_current_is_newest(self):
        chain = make_chain(3)
        window = HeaderWindow()
        for h in chain:
            window.observe(h)
        self.assertEqual(window.current(), chain[-1])

    def test_candidates_newest_first_bounded_by_lookback(self):
        chain = make_chain(6)
        window = HeaderWindow(capacity=6, lookback=3)
        for h in chain:
            window.observe(h)
        self.assertEqual(window.candidates_for_decode(), tuple(reversed(chain[-4:])))
        self.assertEqual(len(window), 6)

    def test_partial_window_candidates(self):
        chain = make_chain(2)
        window = HeaderWindow()
        for h in chain:
            window.observe(h)
        self.assertEqual(window.candidates_for_decode(), (chain[1], chain[0]))

    def test_evicts_oldest_when_full(self):
        chain = make_chain(7)
        window = HeaderWindow(capacity=4)
        for h in chain:
            window.observe(h)
        self.assertEqual(window.snapshot(), tuple(chain[-4:]))
        self.assertNotIn(chain[2].hash, window)
        self.assertIn(chain[3].hash, window)
        self.assertIsNone(window.get(chain[0].hash))
        self.assertEqual(window.get(chain[5].hash), chain[5])

    def test_observe_is_idempotent(self):
        chain = make_chain(4)
        window = HeaderWindow()
        for h in chain:
            self.assertTrue(window.observe(h))
        self.assertFalse(window.observe(chain[0]))
        self.assertEqual(window.snapshot(), tuple(chain))

    def test_same_height_sibling_becomes_current(self):
        chain = make_chain(2)
        fork = make_chain(1, start_height=chain[1].height, fork=b"alt")
        window = HeaderWindow()
        window.observe(chain[0])
        window.observe(chain[1])
        with self.assertLogs("chainveil.chain.window", level="WARNING"):
            self.assertTrue(window.observe(fork[0]))
        self.assertEqual(window.current(), fork[0])
        self.assertIn(chain[1].hash, window)

    def test_late_older_header_is_dropped(self):
        chain = make_chain(8)
        window = HeaderWindow()
        for h in chain[4:]:
            window.observe(h)
        with self.assertLogs("chainveil.chain.window", level="WARNING"):
            self.assertFalse(window.observe(chain[0]))
        self.assertEqual(window.current(), chain[-1])
        self.assertEqual(window.snapshot(), tuple(chain[4:]))
        self.assertNotIn(chain[0].hash, window)

    def test_clear(self):
        window = HeaderWindow()
        for h in make_chain(4):
            window.observe(h)
        window.clear()
        self.assertEqual(len(window), 0)
        with self.assertRaises(NoHeaderAvailable):
            window.current()

    def test_invalid_capacity(self):
        with self.assertRaises(ConfigurationError):
            HeaderWindow(capacity=3)
        with self.assertRaises(ConfigurationError):
            HeaderWindow(capacity=4, lookback=4)

    def test_concurrent_reads_during_writes(self):
        chain = make_chain(200)
        window = HeaderWindow(capacity=4)
        window.observe(chain[0])
        errors = []
        done = threading.Event()

        def reader():
            while not done.is_set():
                cands = window.candidates_for_decode()
                heights = [h.height for h in cands]
                if heights != sorted(heights, reverse=True) or not 1 <= len(cands) <= 4:
                    errors.append(heights)

        threads = [threading.Thread(target=reader) for _ in range(4)]
        for t in threads:
            t.start()
        for h in chain[1:]:
            window.observe(h)
        done.set()
        for t in threads:
            t.join()
        self.assertEqual(errors, [])
        self.assertEqual(window.current(), chain[-1])


if __name__ == "__main__":
    unittest.main()
