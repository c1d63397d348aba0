"""Password hashing utilities."""
from passlib.context import CryptContext

# pbkdf2 keeps hashing pure-python; bcrypt backends reject >72 byte secrets
pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain: str, hashed: str) -> bool:
    return pwd_context.verify(plain, hashed)
