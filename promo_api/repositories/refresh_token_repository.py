"""리프레시 토큰 레포지토리 — 리프레시 토큰 레코드 저장소.

Refresh Token Repository — Persistence of refresh-token records.
Lookups by secret go through the HMAC fingerprint; the bearer secret
itself is never written to the database.

Every operation is idempotent on absent rows: deleting or revoking a
missing id returns False/0 instead of raising.
"""

from datetime import datetime
from typing import Sequence
from uuid import UUID

from sqlalchemy import Select, Update, func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from promo_api.models.token import RefreshToken
from promo_api.repositories.base import BaseRepository
from promo_api.utils.clock import utcnow
from promo_api.utils.jwt import TokenCodec, token_codec


class RefreshTokenRepository(BaseRepository[RefreshToken]):
    """리프레시 토큰 쿼리를 담당하는 레포지토리.

    Repository handling refresh-token queries.

    Attributes:
        codec: 시크릿 지문 계산에 사용하는 토큰 코덱 (Codec used to fingerprint secrets)
    """

    def __init__(self, codec: TokenCodec = token_codec) -> None:
        super().__init__(RefreshToken)
        self.codec: TokenCodec = codec

    async def save(
        self,
        db: AsyncSession,
        principal_id: UUID,
        principal_type: str,
        secret: str,
        expires_at: datetime,
        device_info: str | None = None,
    ) -> RefreshToken:
        """새 리프레시 토큰 레코드를 저장합니다.

        Persist a new ACTIVE refresh-token record for the given secret.

        Args:
            db: 비동기 데이터베이스 세션 (Async database session)
            principal_id: 소유 주체 ID (Owning user or customer UUID)
            principal_type: 주체 종류 (Principal kind: "user" | "customer")
            secret: 발급된 리프레시 시크릿 원문 (Issued bearer secret; only its fingerprint is stored)
            expires_at: 만료 일시 (Expiration timestamp)
            device_info: 디바이스 설명 (Optional device descriptor)

        Returns:
            RefreshToken: 생성된 레코드 (Created record)
        """
        return await self.create(
            db,
            {
                "principal_id": principal_id,
                "principal_type": principal_type,
                "token": self.codec.fingerprint(secret),
                "expires_at": expires_at,
                "device_info": device_info,
                "is_revoked": False,
            },
        )

    async def get_by_secret(
        self,
        db: AsyncSession,
        secret: str,
    ) -> RefreshToken | None:
        """리프레시 시크릿으로 레코드를 조회합니다.

        Retrieve a refresh-token record by its bearer secret.

        Args:
            db: 비동기 데이터베이스 세션 (Async database session)
            secret: 리프레시 시크릿 원문 (Bearer secret presented by the client)

        Returns:
            RefreshToken | None: 조회된 레코드 또는 None (Found record or None)
        """
        if not secret:
            return None
        query: Select = select(RefreshToken).where(
            RefreshToken.token == self.codec.fingerprint(secret)
        )
        result = await db.execute(query)
        return result.scalar_one_or_none()

    async def list_by_principal(
        self,
        db: AsyncSession,
        principal_id: UUID,
        principal_type: str,
    ) -> Sequence[RefreshToken]:
        """주체의 활성 리프레시 토큰 목록을 최신순으로 조회합니다.

        List the principal's active (unrevoked, unexpired) records, newest first.
        """
        query: Select = (
            select(RefreshToken)
            .where(
                RefreshToken.principal_id == principal_id,
                RefreshToken.principal_type == principal_type,
                RefreshToken.is_revoked == False,  # noqa: E712
                RefreshToken.expires_at > utcnow(),
            )
            .order_by(RefreshToken.created_at.desc())
        )
        result = await db.execute(query)
        return result.scalars().all()

    async def revoke_if_active(
        self,
        db: AsyncSession,
        record_id: UUID,
    ) -> bool:
        """활성 레코드를 조건부 UPDATE로 폐기합니다.

        Revoke the record only if it is not revoked yet, as one conditional
        UPDATE. Of two callers racing on the same record exactly one sees
        True; the row lock taken by the UPDATE serializes them.

        Returns:
            bool: 이 호출이 폐기를 수행했으면 True (True when this call made the transition)
        """
        statement: Update = (
            update(RefreshToken)
            .where(
                RefreshToken.id == record_id,
                RefreshToken.is_revoked == False,  # noqa: E712
            )
            .values(is_revoked=True)
            .execution_options(synchronize_session="evaluate")
        )
        result = await db.execute(statement)
        return result.rowcount == 1

    async def revoke(
        self,
        db: AsyncSession,
        record_id: UUID,
    ) -> bool:
        """단일 레코드를 폐기합니다.

        Revoke one record. Returns False when the id does not exist.
        Revoking an already revoked record succeeds without change.
        """
        if await self.revoke_if_active(db, record_id):
            return True
        return await self.get_by_id(db, record_id) is not None

    async def revoke_all_for_principal(
        self,
        db: AsyncSession,
        principal_id: UUID,
        principal_type: str,
    ) -> int:
        """주체의 모든 미폐기 레코드를 폐기합니다.

        Revoke every not-yet-revoked record of the principal (logout from all devices).

        Returns:
            int: 실제로 폐기된 레코드 수 (Number of records transitioned to revoked)
        """
        query: Select = select(RefreshToken).where(
            RefreshToken.principal_id == principal_id,
            RefreshToken.principal_type == principal_type,
            RefreshToken.is_revoked == False,  # noqa: E712
        )
        records: Sequence[RefreshToken] = (await db.execute(query)).scalars().all()
        for record in records:
            record.is_revoked = True
        await db.flush()
        return len(records)

    async def delete_expired_or_revoked(self, db: AsyncSession) -> int:
        """만료되었거나 폐기된 레코드를 모두 삭제합니다.

        Purge every record that is revoked or past its expiry.

        Returns:
            int: 삭제된 레코드 수 (Number of records removed)
        """
        return await self.delete_where(
            db,
            or_(
                RefreshToken.is_revoked == True,  # noqa: E712
                RefreshToken.expires_at < utcnow(),
            ),
        )

    async def count_active_for_principal(
        self,
        db: AsyncSession,
        principal_id: UUID,
        principal_type: str,
    ) -> int:
        """주체의 활성 레코드 수 (Count of the principal's active records)."""
        query: Select = select(func.count()).select_from(RefreshToken).where(
            RefreshToken.principal_id == principal_id,
            RefreshToken.principal_type == principal_type,
            RefreshToken.is_revoked == False,  # noqa: E712
            RefreshToken.expires_at > utcnow(),
        )
        return (await db.execute(query)).scalar() or 0


# 싱글턴 인스턴스 — Singleton instance
refresh_token_repository: RefreshTokenRepository = RefreshTokenRepository()
