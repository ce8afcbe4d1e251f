from datetime import timedelta

import pytest

from auth.exceptions import (
    AuthValidationError,
    InternalFaultError,
    ThrottledError,
    UnauthorizedError,
)
from auth.models import SessionMetadata, VerificationOutcome
from auth.orchestrator import (
    VerificationOrchestrator,
    derive_display_name,
    generate_verification_code,
    mask_identifier,
    normalize_identifier,
)
from auth.verification_store import DEFAULT_MAX_ATTEMPTS

EMAIL = "user@example.com"
CODE = "123456"


@pytest.fixture
def orchestrator(verifications, sessions, store, delivery) -> VerificationOrchestrator:
    return VerificationOrchestrator(
        verifications, sessions, store, delivery=delivery, code_generator=lambda: CODE
    )


@pytest.mark.parametrize(
    "identifier, masked",
    [
        ("alice@example.com", "a***@example.com"),
        ("@example.com", "u***@example.com"),
        ("b@corp.io", "b***@corp.io"),
        ("no-at-sign", "n***@example.com"),
    ],
)
def test_mask_identifier(identifier, masked):
    assert mask_identifier(identifier) == masked


def test_normalize_identifier():
    assert normalize_identifier("  User@Example.COM \n") == EMAIL


@pytest.mark.parametrize(
    "email, name",
    [
        ("jane.doe@example.com", "Jane Doe"),
        ("ops@example.com", "Ops"),
        ("first_last-x+tag@example.com", "First Last X Tag"),
        ("...@example.com", "User"),
    ],
)
def test_derive_display_name(email, name):
    assert derive_display_name(email) == name


def test_generated_codes_are_six_digits():
    for _ in range(200):
        code = generate_verification_code()
        assert len(code) == 6
        assert code.isdigit()


class TestRequestCode:
    @pytest.mark.asyncio
    async def test_creates_record_and_delivers_code(self, orchestrator, verifications, delivery, clock):
        result = await orchestrator.request_code("  User@Example.com ")

        assert result.masked_identifier == "u***@example.com"
        assert result.expires_at == clock() + timedelta(minutes=5)
        assert verifications.get_record(EMAIL).code == CODE
        assert delivery.sent == [(EMAIL, CODE)]

    @pytest.mark.asyncio
    async def test_result_never_contains_code(self, orchestrator):
        result = await orchestrator.request_code(EMAIL)
        assert CODE not in result.model_dump_json()

    @pytest.mark.asyncio
    async def test_works_without_delivery_channel(self, verifications, sessions, store):
        orchestrator = VerificationOrchestrator(verifications, sessions, store)

        await orchestrator.request_code(EMAIL)

        assert verifications.get_record(EMAIL) is not None


class TestVerifyAndIssueSession:
    @pytest.mark.asyncio
    async def test_success_creates_user_and_session(self, orchestrator, store, clock):
        await orchestrator.request_code(EMAIL)
        metadata = SessionMetadata(user_agent="pytest", ip_address="127.0.0.1")

        issued = await orchestrator.verify_and_issue_session(" USER@example.com", CODE, metadata)

        assert issued.user.email == EMAIL
        assert issued.user.display_name == "User"
        assert len(issued.token) == 64
        assert issued.issued_at == clock()
        assert issued.expires_at == clock() + timedelta(days=7)

        session = await store.find_session_by_token(issued.token)
        assert session.user_id == issued.user.id
        assert session.user_agent == "pytest"
        assert session.ip_address == "127.0.0.1"

    @pytest.mark.asyncio
    async def test_existing_user_is_reused(self, orchestrator, store):
        existing = store.add_user(EMAIL, display_name="Chosen Name")
        await orchestrator.request_code(EMAIL)

        issued = await orchestrator.verify_and_issue_session(EMAIL, CODE)

        assert issued.user.id == existing.id
        assert issued.user.display_name == "Chosen Name"
        assert len(store.users) == 1

    @pytest.mark.asyncio
    async def test_each_login_gets_a_fresh_token(self, orchestrator):
        await orchestrator.request_code(EMAIL)
        first = await orchestrator.verify_and_issue_session(EMAIL, CODE)
        await orchestrator.request_code(EMAIL)
        second = await orchestrator.verify_and_issue_session(EMAIL, CODE)

        assert first.token != second.token

    @pytest.mark.asyncio
    async def test_no_pending_code_is_unauthorized(self, orchestrator):
        with pytest.raises(UnauthorizedError) as exc_info:
            await orchestrator.verify_and_issue_session(EMAIL, CODE)
        assert exc_info.value.message == "Invalid verification code."

    @pytest.mark.asyncio
    async def test_expired_code_is_validation_error(self, orchestrator, clock):
        await orchestrator.request_code(EMAIL)
        clock.advance(minutes=10)

        with pytest.raises(AuthValidationError) as exc_info:
            await orchestrator.verify_and_issue_session(EMAIL, CODE)
        assert exc_info.value.status_code == 400

    @pytest.mark.asyncio
    async def test_throttled_after_max_wrong_attempts(self, orchestrator, store):
        await orchestrator.request_code(EMAIL)
        for _ in range(DEFAULT_MAX_ATTEMPTS):
            with pytest.raises(UnauthorizedError):
                await orchestrator.verify_and_issue_session(EMAIL, "999999")

        with pytest.raises(ThrottledError) as exc_info:
            await orchestrator.verify_and_issue_session(EMAIL, CODE)

        assert exc_info.value.status_code == 429
        assert store.sessions == {}

    @pytest.mark.asyncio
    @pytest.mark.parametrize("operation", ["upsert_user_by_email", "create_session"])
    async def test_storage_fault_is_internal_and_code_stays_consumed(
        self, orchestrator, store, verifications, operation
    ):
        await orchestrator.request_code(EMAIL)
        store.fail_on.add(operation)

        with pytest.raises(InternalFaultError) as exc_info:
            await orchestrator.verify_and_issue_session(EMAIL, CODE)

        assert "unavailable" not in exc_info.value.message
        assert verifications.get_record(EMAIL) is None

        store.fail_on.clear()
        with pytest.raises(UnauthorizedError):
            await orchestrator.verify_and_issue_session(EMAIL, CODE)

    @pytest.mark.asyncio
    async def test_code_consumed_elsewhere_is_unauthorized(self, orchestrator, verifications):
        await orchestrator.request_code(EMAIL)
        assert verifications.verify_code(EMAIL, CODE) is VerificationOutcome.SUCCESS

        with pytest.raises(UnauthorizedError):
            await orchestrator.verify_and_issue_session(EMAIL, CODE)
