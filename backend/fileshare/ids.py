"""Opaque id generation for files and anonymous users."""
import secrets
import string
import time

_BASE36 = string.digits + string.ascii_lowercase


def _random_base36(length: int) -> str:
    return "".join(secrets.choice(_BASE36) for _ in range(length))


def generate_file_id() -> str:
    """``file_<epoch ms>_<9 base36 chars>``. Never reused."""
    return f"file_{int(time.time() * 1000)}_{_random_base36(9)}"


def generate_user_id() -> str:
    """``user_<12 base36 chars>``, the anonymous identity a client keeps locally."""
    return f"user_{_random_base36(12)}"
