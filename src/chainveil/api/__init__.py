from .channel import VeilChannel, recipient_ref_for

__all__ = ["VeilChannel", "recipient_ref_for"]
