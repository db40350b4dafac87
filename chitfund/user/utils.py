import string
import secrets


def generate_referral_code(name: str) -> str:
    """Referral code built from the first letters of the name and a random tail."""
    letters = "".join(ch for ch in name.upper() if ch.isalpha())[:4] or "USER"
    tail = "".join(secrets.choice(string.digits) for i in range(4))
    return f"{letters}{tail}"
