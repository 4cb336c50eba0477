import secrets
import time


def new_session_id() -> str:
    """
    Random, opaque provenance label for one operator profile.

    Not a credential. Contains no ':' so it embeds safely in audit tags.
    """
    return f"agent_{secrets.token_hex(6)}_{int(time.time() * 1000)}"
