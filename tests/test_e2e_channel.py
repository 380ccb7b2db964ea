import unittest

from chainveil import DecryptionExhausted, InMemoryHeaderSource, NoHeaderAvailable, TransportPolicy
from chainveil.api import VeilChannel, recipient_ref_for
from chainveil.chain.source import HeaderFollower
from chainveil.codec import frame
from chainveil.crypto.inner import HpkeInnerCipher
from chainveil.exceptions import InnerCipherError
from tests.helpers import make_chain


class TestE2EChannel(unittest.TestCase):
    def setUp(self):
        self.chain = make_chain(10)
        self.source = InMemoryHeaderSource(self.chain[:6])
        self.alice_inner = HpkeInnerCipher.generate()
        self.bob_inner = HpkeInnerCipher.generate()
        self.alice = VeilChannel(self.alice_inner)
        self.bob = VeilChannel(self.bob_inner, policy=TransportPolicy.recommended())
        self.alice_follow = HeaderFollower(self.source, self.alice.window)
        self.bob_follow = HeaderFollower(self.source, self.bob.window)
        self.alice_follow.poll_once()
        self.bob_follow.poll_once()

    def test_message_flow(self):
        env = self.alice.send(self.bob_inner.identity, b"meet at noon")
        self.assertTrue(self.bob.is_addressed_to(env, self.bob_inner.identity))
        self.assertEqual(env.recipient_ref, recipient_ref_for(self.bob_inner.identity))
        self.assertEqual(self.bob.receive(env.serialize(), self.alice_inner.identity), b"meet at noon")

    def test_event_flow(self):
        event = self.alice.send_event(self.bob_inner.identity, b"over events")
        self.assertEqual(self.bob.receive_event(event, self.alice_inner.identity), b"over events")

    def test_receiver_ahead_within_lookback(self):
        env = self.alice.send(self.bob_inner.identity, b"sent at tip")
        for h in self.chain[6:9]:
            self.source.append(h)
        self.bob_follow.poll_once()
        self.assertEqual(self.bob.receive(env, self.alice_inner.identity), b"sent at tip")

    def test_receiver_too_far_ahead(self):
        env = self.alice.send(self.bob_inner.identity, b"stale")
        for h in self.chain[6:10]:
            self.source.append(h)
        self.bob_follow.poll_once()
        with self.assertRaises(DecryptionExhausted):
            self.bob.receive(env, self.alice_inner.identity)

    def test_outer_layer_opens_but_inner_rejects_third_party(self):
        carol_inner = HpkeInnerCipher.generate()
        carol = VeilChannel(carol_inner)
        for h in self.chain[:6]:
            carol.observe(h)
        env = self.alice.send(self.bob_inner.identity, b"for bob only")
        # Outer keys are public; the inner layer keeps the payload private.
        self.assertTrue(carol.engine.decode(env))
        with self.assertRaises(InnerCipherError):
            carol.receive(env, self.alice_inner.identity)

    def test_send_before_any_header(self):
        lonely = VeilChannel(HpkeInnerCipher.generate())
        with self.assertRaises(NoHeaderAvailable):
            lonely.send(self.bob_inner.identity, b"x")

    def test_event_body_has_no_plaintext(self):
        event = self.alice.send_event(self.bob_inner.identity, b"distinctive-plaintext")
        env = frame.from_event(event)
        self.assertNotIn(b"distinctive-plaintext", env.ciphertext)
        self.assertEqual(len(env.ciphertext), 1024 + 16)


if __name__ == "__main__":
    unittest.main()
