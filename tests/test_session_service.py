"""세션 서비스 테스트 — 회원가입, 로그인, 회전, 폐기, 검증, 정리.

Session service tests — Registration, login, refresh rotation with replay
rejection, revocation, logout, validation and the refresh-token sweep.
"""

import uuid
from datetime import timedelta

import pytest
from sqlalchemy import func, select

from promo_api.models.token import RefreshToken
from promo_api.models.user import PRINCIPAL_CUSTOMER, PRINCIPAL_USER
from promo_api.repositories.refresh_token_repository import refresh_token_repository
from promo_api.schemas.auth import (
    CustomerRegisterRequest,
    LoginRequest,
    UserRegisterRequest,
)
from promo_api.services.session_service import session_service
from promo_api.utils.clock import utcnow
from promo_api.utils.exceptions import (
    AccountInactiveError,
    EmailInUseError,
    InvalidCredentialsError,
    PrincipalUnavailableError,
    RefreshTokenInvalidError,
    RefreshTokenNotFoundError,
    StoreNotFoundError,
)
from promo_api.utils.jwt import token_codec
from tests.conftest import make_customer_token


async def _count_records(db) -> int:
    return (await db.execute(select(func.count()).select_from(RefreshToken))).scalar()


class TestRegistration:
    """회원가입 테스트."""

    async def test_register_customer_then_login(self, db):
        """가입 후 로그인 시 다른 리프레시 시크릿 발급."""
        registered = await session_service.register_customer(
            db, CustomerRegisterRequest(name="A", email="a@x.com", password="secret1")
        )
        assert registered.user.type == PRINCIPAL_CUSTOMER
        assert registered.user.role == "CUSTOMER"
        assert registered.token_type == "Bearer"
        assert registered.expires_in == 900

        logged_in = await session_service.login_customer(
            db, LoginRequest(email="a@x.com", password="secret1")
        )
        assert logged_in.user.id == registered.user.id
        assert logged_in.refresh_token != registered.refresh_token
        assert await _count_records(db) == 2

    async def test_register_customer_duplicate_email(self, db, customer):
        """이메일 중복은 대소문자 구분 없이 거부."""
        with pytest.raises(EmailInUseError):
            await session_service.register_customer(
                db, CustomerRegisterRequest(name="B", email="A@X.com", password="secret1")
            )

    async def test_register_customer_stores_bcrypt_hash(self, db):
        """비밀번호는 bcrypt 해시로 저장."""
        result = await session_service.register_customer(
            db, CustomerRegisterRequest(name="A", email="hash@x.com", password="secret1")
        )
        from promo_api.repositories.customer_repository import customer_repository
        customer = await customer_repository.get_by_id(db, uuid.UUID(result.user.id))
        assert customer.password_hash != "secret1"
        assert customer.password_hash.startswith("$2")

    async def test_register_user_with_store(self, db, store):
        """매장 소속 사용자 가입."""
        result = await session_service.register_user(
            db,
            UserRegisterRequest(
                name="Manager", email="m@x.com", password="secret1",
                role="STORE_MANAGER", store_id=str(store.id),
            ),
        )
        assert result.user.type == PRINCIPAL_USER
        assert result.user.role == "STORE_MANAGER"
        assert result.user.store_id == str(store.id)
        claims = token_codec.verify_access_token(result.access_token)
        assert claims["store_id"] == str(store.id)
        assert claims["kind"] == PRINCIPAL_USER

    async def test_register_user_unknown_store(self, db):
        """존재하지 않는 매장이면 StoreNotFound."""
        with pytest.raises(StoreNotFoundError):
            await session_service.register_user(
                db,
                UserRegisterRequest(
                    name="U", email="u@x.com", password="secret1", store_id=str(uuid.uuid4()),
                ),
            )

    async def test_register_user_malformed_store_id(self, db):
        """UUID 형식이 아닌 매장 ID도 StoreNotFound."""
        with pytest.raises(StoreNotFoundError):
            await session_service.register_user(
                db,
                UserRegisterRequest(name="U", email="u@x.com", password="secret1", store_id="nope"),
            )

    async def test_user_and_customer_emails_are_separate(self, db, customer):
        """고객과 같은 이메일로 웹 사용자 가입 가능."""
        result = await session_service.register_user(
            db, UserRegisterRequest(name="U", email="a@x.com", password="secret1")
        )
        assert result.user.type == PRINCIPAL_USER


class TestLogin:
    """로그인 테스트."""

    async def test_unknown_email_and_wrong_password_are_indistinguishable(self, db, customer):
        """미존재 이메일과 잘못된 비밀번호는 같은 오류."""
        with pytest.raises(InvalidCredentialsError) as unknown:
            await session_service.login_customer(db, LoginRequest(email="nobody@x.com", password="secret1"))
        with pytest.raises(InvalidCredentialsError) as wrong:
            await session_service.login_customer(db, LoginRequest(email="a@x.com", password="wrong-one"))

        assert unknown.value.status_code == wrong.value.status_code == 401
        assert unknown.value.detail == wrong.value.detail

    async def test_inactive_account(self, db, customer):
        """비활성 계정은 AccountInactive."""
        customer.is_active = False
        await db.flush()
        with pytest.raises(AccountInactiveError):
            await session_service.login_customer(db, LoginRequest(email="a@x.com", password="secret1"))

    async def test_login_is_case_insensitive(self, db, customer):
        """이메일 대소문자 무시."""
        result = await session_service.login_customer(db, LoginRequest(email="A@X.COM", password="secret1"))
        assert result.user.email == "a@x.com"

    async def test_user_login(self, db, admin_user):
        """웹 사용자 로그인."""
        result = await session_service.login_user(db, LoginRequest(email="admin@test.com", password="admin123!"))
        assert result.user.role == "ADMIN"
        assert result.user.type == PRINCIPAL_USER


class TestRefreshRotation:
    """리프레시 회전 테스트."""

    async def test_rotation_rejects_replay(self, db, customer):
        """회전된 시크릿 재사용은 거부되고 레코드는 삭제됨."""
        first = await session_service.login_customer(db, LoginRequest(email="a@x.com", password="secret1"))
        second = await session_service.refresh(db, first.refresh_token)
        assert second.refresh_token != first.refresh_token

        with pytest.raises(RefreshTokenInvalidError):
            await session_service.refresh(db, first.refresh_token)
        assert await refresh_token_repository.get_by_secret(db, first.refresh_token) is None

        # 새 시크릿은 여전히 유효 (The new secret still works)
        third = await session_service.refresh(db, second.refresh_token)
        assert third.user.id == first.user.id

    async def test_concurrent_rotation_has_one_winner(self, db, session_factory, customer):
        """같은 시크릿 동시 회전은 한 번만 성공."""
        login = await session_service.login_customer(db, LoginRequest(email="a@x.com", password="secret1"))
        await db.commit()

        async with session_factory() as first, session_factory() as second:
            # 첫 세션은 레코드를 ACTIVE로 읽은 상태 (first has already read the record as ACTIVE)
            seen = await refresh_token_repository.get_by_secret(first, login.refresh_token)
            assert seen is not None and seen.is_valid()

            winner = await session_service.refresh(second, login.refresh_token)
            await second.commit()

            with pytest.raises(RefreshTokenInvalidError):
                await session_service.refresh(first, login.refresh_token)
            await first.rollback()

        live = (await db.execute(
            select(func.count()).select_from(RefreshToken).where(RefreshToken.is_revoked == False)  # noqa: E712
        )).scalar()
        assert live == 1
        assert await refresh_token_repository.get_by_secret(db, winner.refresh_token) is not None

    async def test_unknown_secret(self, db):
        """알 수 없는 시크릿은 NotFound."""
        with pytest.raises(RefreshTokenNotFoundError):
            await session_service.refresh(db, "never-issued")

    async def test_expired_secret_is_purged(self, db, customer):
        """만료된 시크릿은 거부되고 삭제됨."""
        await refresh_token_repository.save(
            db,
            principal_id=customer.id,
            principal_type=PRINCIPAL_CUSTOMER,
            secret="expired-secret",
            expires_at=utcnow() - timedelta(minutes=1),
        )
        with pytest.raises(RefreshTokenInvalidError):
            await session_service.refresh(db, "expired-secret")
        assert await refresh_token_repository.get_by_secret(db, "expired-secret") is None

    async def test_inactive_principal_revokes_record(self, db, customer):
        """비활성 소유자면 PrincipalUnavailable, 레코드는 폐기."""
        session = await session_service.login_customer(db, LoginRequest(email="a@x.com", password="secret1"))
        customer.is_active = False
        await db.flush()

        with pytest.raises(PrincipalUnavailableError):
            await session_service.refresh(db, session.refresh_token)
        record = await refresh_token_repository.get_by_secret(db, session.refresh_token)
        assert record is not None
        assert record.is_revoked is True

    async def test_device_info_carried_forward(self, db, customer):
        """디바이스 정보가 없으면 기존 값 유지."""
        first = await session_service.login_customer(
            db, LoginRequest(email="a@x.com", password="secret1"), device_info="iPhone"
        )
        second = await session_service.refresh(db, first.refresh_token)
        record = await refresh_token_repository.get_by_secret(db, second.refresh_token)
        assert record.device_info == "iPhone"


class TestRevocation:
    """폐기 및 로그아웃 테스트."""

    async def test_revoke_unknown_returns_false(self, db):
        """알 수 없는 시크릿 폐기는 False."""
        assert await session_service.revoke(db, "unknown") is False

    async def test_revoke_then_refresh_fails(self, db, customer):
        """폐기한 시크릿으로 갱신 불가."""
        session = await session_service.login_customer(db, LoginRequest(email="a@x.com", password="secret1"))
        assert await session_service.revoke(db, session.refresh_token) is True
        with pytest.raises(RefreshTokenInvalidError):
            await session_service.refresh(db, session.refresh_token)

    async def test_revoke_all(self, db, customer):
        """모든 세션 폐기 후 활성 세션 없음."""
        for _ in range(3):
            await session_service.login_customer(db, LoginRequest(email="a@x.com", password="secret1"))
        assert await session_service.revoke_all(db, customer.id, PRINCIPAL_CUSTOMER) == 3
        sessions = await session_service.list_sessions(db, customer.id, PRINCIPAL_CUSTOMER)
        assert sessions.active_count == 0
        assert sessions.sessions == []

    async def test_logout_always_succeeds(self, db):
        """잘못된 토큰으로도 로그아웃 성공."""
        result = await session_service.logout(db, "garbage", None)
        assert result.success is True
        assert result.message == "Logged out successfully"

    async def test_logout_revokes_refresh_secret(self, db, customer):
        """로그아웃 시 전달된 시크릿 폐기."""
        session = await session_service.login_customer(db, LoginRequest(email="a@x.com", password="secret1"))
        await session_service.logout(db, session.access_token, session.refresh_token)
        record = await refresh_token_repository.get_by_secret(db, session.refresh_token)
        assert record.is_revoked is True


class TestValidate:
    """액세스 토큰 검증 테스트."""

    async def test_valid_customer_token(self, db, customer):
        """고객 토큰 검증 성공."""
        result = await session_service.validate(db, make_customer_token(customer))
        assert result.valid is True
        assert result.user.id == str(customer.id)
        assert result.user.type == PRINCIPAL_CUSTOMER

    async def test_invalid_token(self, db):
        """잘못된 토큰은 예외 없이 invalid."""
        result = await session_service.validate(db, "garbage")
        assert result.valid is False
        assert result.message == "Invalid or expired token"

    async def test_inactive_principal(self, db, customer):
        """비활성 주체는 invalid."""
        token = make_customer_token(customer)
        customer.is_active = False
        await db.flush()
        result = await session_service.validate(db, token)
        assert result.valid is False
        assert result.message == "User not found or inactive"

    async def test_kind_claim_selects_principal_table(self, db, customer):
        """kind 클레임이 user이면 고객 ID로는 조회되지 않음."""
        token = token_codec.sign_access_token({"sub": str(customer.id), "kind": PRINCIPAL_USER})
        result = await session_service.validate(db, token)
        assert result.valid is False


class TestSweep:
    """리프레시 토큰 정리 테스트."""

    async def test_sweep_keeps_only_active(self, db, customer):
        """정리 후 활성 레코드만 남음."""
        active = await session_service.login_customer(db, LoginRequest(email="a@x.com", password="secret1"))
        rotated = await session_service.login_customer(db, LoginRequest(email="a@x.com", password="secret1"))
        await session_service.refresh(db, rotated.refresh_token)
        await refresh_token_repository.save(
            db,
            principal_id=customer.id,
            principal_type=PRINCIPAL_CUSTOMER,
            secret="old",
            expires_at=utcnow() - timedelta(days=1),
        )

        removed = await session_service.sweep(db)
        assert removed == 2
        records = (await db.execute(select(RefreshToken))).scalars().all()
        assert len(records) == 2
        assert all(r.is_valid() for r in records)
        assert await refresh_token_repository.get_by_secret(db, active.refresh_token) is not None
