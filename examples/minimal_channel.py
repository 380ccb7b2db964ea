import asyncio
import hashlib
import logging

from chainveil import InMemoryHeaderSource, TransportPolicy
from chainveil.api import VeilChannel
from chainveil.chain.header import BlockHeader
from chainveil.chain.source import HeaderFollower
from chainveil.crypto.inner import HpkeInnerCipher


def fake_chain(n: int) -> list[BlockHeader]:
    # Replace with headers from your node or indexer.
    headers = []
    prev = b"\x00" * 32
    for height in range(n):
        h = hashlib.sha256(b"demo-block-%d" % height).digest()
        headers.append(BlockHeader(hash=h, prev_hash=prev, height=height, timestamp=1_700_000_000 + 600 * height))
        prev = h
    return headers


async def main():
    logging.basicConfig(level=logging.DEBUG)
    policy = TransportPolicy.from_env()
    source = InMemoryHeaderSource(fake_chain(5))

    alice_inner = HpkeInnerCipher.generate()
    bob_inner = HpkeInnerCipher.generate()
    alice = VeilChannel(alice_inner, policy=policy)
    bob = VeilChannel(bob_inner, policy=policy)

    for ch in (alice, bob):
        HeaderFollower(source, ch.window).poll_once()

    # Replace with your relay publish/subscribe calls
    event = alice.send_event(bob_inner.identity, b"hello over the chain-keyed layer")
    print("publish:", len(event["content"]), "base64 chars", event["tags"][0])

    plaintext = bob.receive_event(event, alice_inner.identity)
    print("received:", plaintext.decode())

    # Keep following the chain in the background as a long-running client would.
    stop = asyncio.Event()
    follower = asyncio.create_task(HeaderFollower(source, bob.window).run(policy.poll_interval_seconds, stop))
    stop.set()
    await follower


if __name__ == "__main__":
    asyncio.run(main())
