"""비밀번호 해싱 및 검증 유틸리티 모듈.

Password hashing and verification utility module.
Uses bcrypt directly for secure password storage.
bcrypt is CPU-bound, so the async wrappers run it in a worker thread and
the event loop keeps serving other requests meanwhile.
"""

import asyncio

import bcrypt


def hash_password(password: str) -> str:
    """평문 비밀번호를 bcrypt 해시로 변환합니다.

    Hash a plain text password using bcrypt.
    The resulting hash includes a random salt, making each hash unique
    even for identical passwords.

    Args:
        password: 평문 비밀번호 (Plain text password to hash)

    Returns:
        str: bcrypt 해시 문자열 (Bcrypt hash string, ~60 chars)
    """
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """평문 비밀번호와 bcrypt 해시를 비교 검증합니다.

    Verify a plain text password against a bcrypt hash.
    Malformed stored hashes count as a mismatch.

    Args:
        plain_password: 검증할 평문 비밀번호 (Plain text password to verify)
        hashed_password: 저장된 bcrypt 해시 (Stored bcrypt hash to compare against)

    Returns:
        bool: 일치하면 True, 불일치하면 False (True if password matches hash)
    """
    try:
        return bcrypt.checkpw(
            plain_password.encode("utf-8"), hashed_password.encode("utf-8")
        )
    except ValueError:
        return False


class PasswordHasher:
    """비동기 비밀번호 해싱 기능 (Async password hashing capability)."""

    async def hash(self, password: str) -> str:
        return await asyncio.to_thread(hash_password, password)

    async def compare(self, password: str, hashed_password: str) -> bool:
        return await asyncio.to_thread(verify_password, password, hashed_password)


# 싱글턴 인스턴스 — Singleton instance
password_hasher: PasswordHasher = PasswordHasher()
