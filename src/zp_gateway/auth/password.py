"""Password hashing with the ``bcrypt`` library (>=4.0).

passlib is not used: it is unmaintained and breaks against bcrypt >=4.
"""

import bcrypt


def hash_password(plain: str) -> str:
    """bcrypt hash of a plain-text password, as a utf-8 string."""
    return bcrypt.hashpw(plain.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def verify_password(plain: str, hashed: str) -> bool:
    return bcrypt.checkpw(plain.encode("utf-8"), hashed.encode("utf-8"))
