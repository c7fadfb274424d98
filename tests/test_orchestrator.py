"""Tests for core.connection.orchestrator: full connection attempts against a fake engine."""

import asyncio

import pytest

from core.connection.errors import AttemptInProgressError, ErrorKind
from core.connection.orchestrator import (
    AttemptResult,
    ConnectionAttempt,
    ConnectionIntent,
    ConnectionOrchestrator,
    Credentials,
    SettleDelays,
    build_orchestrator,
)
from core.engine.errors import EngineError, ErrorCode
from core.engine.models import BlockFormat, FilesystemTarget
from tests.fakes import FakeEngine, RecordingSleep

TARGET = FilesystemTarget(path="/backups/repo")
CREDS = Credentials(password="correct horse", description="Laptop backups")


def _orchestrator(engine: FakeEngine, sleep: RecordingSleep) -> ConnectionOrchestrator:
    return ConnectionOrchestrator(engine, sleep=sleep)


class TestCreateFlow:
    @pytest.mark.asyncio
    async def test_create_then_verified_on_second_poll(self, sleep: RecordingSleep) -> None:
        # pre-flight: not connected; verifier: not yet, then connected
        engine = FakeEngine([False, False, True])
        outcome = await _orchestrator(engine, sleep).run_connection_attempt(
            TARGET, ConnectionIntent.CREATE, CREDS
        )

        assert outcome.result is AttemptResult.SUCCEEDED
        assert outcome.ok
        assert outcome.status is not None and outcome.status.connected
        assert engine.calls == ["status", "create", "status", "status"]
        assert sleep.waits == [2.0, 0.5]

    @pytest.mark.asyncio
    async def test_create_passes_password_description_and_block_format(
        self, sleep: RecordingSleep
    ) -> None:
        engine = FakeEngine([False, True])
        block_format = BlockFormat(hash="BLAKE2B-256", splitter="FIXED-4M")
        await _orchestrator(engine, sleep).run_connection_attempt(
            TARGET, ConnectionIntent.CREATE, CREDS, block_format
        )

        (created,) = engine.created
        assert created["target"] == TARGET
        assert created["password"] == "correct horse"
        assert created["description"] == "Laptop backups"
        assert created["block_format"] == block_format

    @pytest.mark.asyncio
    async def test_blank_description_is_sent_as_none(self, sleep: RecordingSleep) -> None:
        engine = FakeEngine([False, True])
        await _orchestrator(engine, sleep).run_connection_attempt(
            TARGET, ConnectionIntent.CREATE, Credentials(password="correct horse", description="")
        )
        assert engine.created[0]["description"] is None

    @pytest.mark.asyncio
    async def test_create_is_not_reissued_after_timeout(self, sleep: RecordingSleep) -> None:
        engine = FakeEngine([False])
        outcome = await _orchestrator(engine, sleep).run_connection_attempt(
            TARGET, ConnectionIntent.CREATE, CREDS
        )

        assert outcome.result is AttemptResult.TIMED_OUT
        assert outcome.kind is ErrorKind.VERIFICATION_TIMED_OUT
        assert outcome.message == ErrorKind.VERIFICATION_TIMED_OUT.message
        assert engine.count("create") == 1
        assert engine.count("status") == 1 + 15
        assert sleep.waits == [2.0, 0.5] + [1.0] * 13


class TestConnectFlow:
    @pytest.mark.asyncio
    async def test_connect_has_no_provision_settle(self, sleep: RecordingSleep) -> None:
        engine = FakeEngine([False, True])
        outcome = await _orchestrator(engine, sleep).run_connection_attempt(
            TARGET, ConnectionIntent.CONNECT, CREDS
        )

        assert outcome.ok
        assert engine.calls == ["status", "connect", "status"]
        assert engine.connected_with == [{"target": TARGET, "password": "correct horse"}]
        assert sleep.waits == []

    @pytest.mark.asyncio
    async def test_wrong_password_fails_without_verification(self, sleep: RecordingSleep) -> None:
        engine = FakeEngine(
            [False],
            connect_error=EngineError("bad password", ErrorCode.INVALID_PASSWORD, status_code=403),
        )
        outcome = await _orchestrator(engine, sleep).run_connection_attempt(
            TARGET, ConnectionIntent.CONNECT, CREDS
        )

        assert outcome.result is AttemptResult.FAILED
        assert outcome.kind is ErrorKind.INVALID_PASSWORD
        assert outcome.message == ErrorKind.INVALID_PASSWORD.message
        assert engine.calls == ["status", "connect"]
        assert sleep.waits == []


class TestPreflight:
    @pytest.mark.asyncio
    async def test_connected_repository_is_disconnected_first(self, sleep: RecordingSleep) -> None:
        engine = FakeEngine([True, True])
        outcome = await _orchestrator(engine, sleep).run_connection_attempt(
            TARGET, ConnectionIntent.CONNECT, CREDS
        )

        assert outcome.ok
        assert engine.calls == ["status", "disconnect", "connect", "status"]
        assert sleep.waits == [0.5]

    @pytest.mark.asyncio
    @pytest.mark.parametrize("intent", list(ConnectionIntent))
    async def test_disconnect_precedes_engine_call(
        self, intent: ConnectionIntent, sleep: RecordingSleep
    ) -> None:
        engine = FakeEngine([True, False, True])
        await _orchestrator(engine, sleep).run_connection_attempt(TARGET, intent, CREDS)

        assert engine.count("disconnect") == 1
        assert engine.calls.index("disconnect") < engine.calls.index(intent.value)

    @pytest.mark.asyncio
    @pytest.mark.parametrize("intent", list(ConnectionIntent))
    async def test_failed_disconnect_ends_attempt(
        self, intent: ConnectionIntent, sleep: RecordingSleep
    ) -> None:
        engine = FakeEngine(
            [True], disconnect_error=EngineError("busy", ErrorCode.HTTP_REQUEST_FAILED, status_code=500)
        )
        outcome = await _orchestrator(engine, sleep).run_connection_attempt(TARGET, intent, CREDS)

        assert outcome.result is AttemptResult.FAILED
        assert outcome.kind is ErrorKind.DISCONNECT_FAILED
        assert outcome.message == ErrorKind.DISCONNECT_FAILED.message
        assert "busy" in outcome.detail
        assert engine.count("create") == 0
        assert engine.count("connect") == 0
        assert sleep.waits == []

    @pytest.mark.asyncio
    async def test_disconnect_failure_kind_overrides_engine_code(
        self, sleep: RecordingSleep
    ) -> None:
        # a refused disconnect is still reported as an unknown repository state
        engine = FakeEngine(
            [True], disconnect_error=EngineError("refused", ErrorCode.CONNECTION_REFUSED)
        )
        outcome = await _orchestrator(engine, sleep).run_connection_attempt(
            TARGET, ConnectionIntent.CONNECT, CREDS
        )

        assert outcome.kind is ErrorKind.DISCONNECT_FAILED
        assert not outcome.kind.recoverable
        assert outcome.detail == "refused"

    @pytest.mark.asyncio
    async def test_unavailable_status_is_treated_as_not_connected(
        self, sleep: RecordingSleep
    ) -> None:
        engine = FakeEngine([EngineError("starting", ErrorCode.SERVER_NOT_RUNNING), True])
        outcome = await _orchestrator(engine, sleep).run_connection_attempt(
            TARGET, ConnectionIntent.CONNECT, CREDS
        )

        assert outcome.ok
        assert engine.calls == ["status", "connect", "status"]


class TestEngineFailures:
    @pytest.mark.asyncio
    async def test_create_on_existing_repository(self, sleep: RecordingSleep) -> None:
        engine = FakeEngine(
            [False], create_error=EngineError("exists", ErrorCode.REPOSITORY_ALREADY_CONNECTED)
        )
        outcome = await _orchestrator(engine, sleep).run_connection_attempt(
            TARGET, ConnectionIntent.CREATE, CREDS
        )

        assert outcome.kind is ErrorKind.ALREADY_CONNECTED
        assert engine.count("status") == 1
        assert sleep.waits == []

    @pytest.mark.asyncio
    async def test_unreachable_server_is_recoverable(self, sleep: RecordingSleep) -> None:
        engine = FakeEngine([False], connect_error=ConnectionRefusedError("refused"))
        outcome = await _orchestrator(engine, sleep).run_connection_attempt(
            TARGET, ConnectionIntent.CONNECT, CREDS
        )

        assert outcome.kind is ErrorKind.CONNECTION_REFUSED
        assert outcome.kind.recoverable

    @pytest.mark.asyncio
    async def test_verification_error_fails_attempt(self, sleep: RecordingSleep) -> None:
        engine = FakeEngine([False, False, EngineError("gone", ErrorCode.SERVER_NOT_RUNNING)])
        outcome = await _orchestrator(engine, sleep).run_connection_attempt(
            TARGET, ConnectionIntent.CONNECT, CREDS
        )

        assert outcome.result is AttemptResult.FAILED
        assert outcome.kind is ErrorKind.SERVER_NOT_RUNNING
        assert engine.count("connect") == 1


class TestAttemptLifecycle:
    @pytest.mark.asyncio
    async def test_outcome_and_retries_recorded_on_attempt(self, sleep: RecordingSleep) -> None:
        engine = FakeEngine([False, False, False, True])
        attempt = ConnectionAttempt(ConnectionIntent.CONNECT, TARGET, CREDS)
        outcome = await _orchestrator(engine, sleep).run(attempt)

        assert attempt.finished
        assert attempt.outcome is outcome
        assert attempt.retries == 3

    @pytest.mark.asyncio
    async def test_finished_attempt_cannot_be_rerun(self, sleep: RecordingSleep) -> None:
        engine = FakeEngine([False, True])
        orchestrator = _orchestrator(engine, sleep)
        attempt = ConnectionAttempt(ConnectionIntent.CONNECT, TARGET, CREDS)
        await orchestrator.run(attempt)

        with pytest.raises(ValueError):
            await orchestrator.run(attempt)
        assert engine.count("connect") == 1

    @pytest.mark.asyncio
    async def test_second_attempt_rejected_while_busy(self) -> None:
        release = asyncio.Event()

        async def blocking_sleep(seconds: float) -> None:
            await release.wait()

        engine = FakeEngine([False, True])
        orchestrator = ConnectionOrchestrator(engine, sleep=blocking_sleep)
        first = asyncio.create_task(
            orchestrator.run_connection_attempt(TARGET, ConnectionIntent.CREATE, CREDS)
        )
        while not orchestrator.busy:
            await asyncio.sleep(0)

        with pytest.raises(AttemptInProgressError):
            await orchestrator.run_connection_attempt(TARGET, ConnectionIntent.CONNECT, CREDS)
        assert engine.count("connect") == 0

        release.set()
        outcome = await first
        assert outcome.ok
        assert not orchestrator.busy

    @pytest.mark.asyncio
    async def test_busy_cleared_after_failure(self, sleep: RecordingSleep) -> None:
        engine = FakeEngine([False], connect_error=EngineError("x", ErrorCode.INVALID_PASSWORD))
        orchestrator = _orchestrator(engine, sleep)
        await orchestrator.run_connection_attempt(TARGET, ConnectionIntent.CONNECT, CREDS)
        assert not orchestrator.busy

    @pytest.mark.asyncio
    async def test_unexpected_error_still_yields_outcome(self, sleep: RecordingSleep) -> None:
        engine = FakeEngine([False, RuntimeError("bug")])
        orchestrator = _orchestrator(engine, sleep)
        outcome = await orchestrator.run_connection_attempt(TARGET, ConnectionIntent.CONNECT, CREDS)

        assert outcome.result is AttemptResult.FAILED
        assert outcome.kind is ErrorKind.UNKNOWN
        assert not orchestrator.busy


def test_credentials_repr_hides_password() -> None:
    text = repr(CREDS)
    assert "correct horse" not in text
    assert "Laptop backups" in text


def test_settle_delays_from_settings() -> None:
    settings = {"connection": {"disconnect_settle": 1, "provision_settle": 3.5}}
    assert SettleDelays.from_settings(settings) == SettleDelays(disconnect=1.0, provision=3.5)
    assert SettleDelays.from_settings({}) == SettleDelays()


@pytest.mark.asyncio
async def test_build_orchestrator_uses_settings() -> None:
    settings = {
        "connection": {
            "provision_settle": 0.0,
            "verification": {"max_attempts": 2, "first_delay": 0.0, "delay": 0.0},
        }
    }
    engine = FakeEngine([False])
    orchestrator = build_orchestrator(engine, settings)

    outcome = await orchestrator.run_connection_attempt(TARGET, ConnectionIntent.CREATE, CREDS)
    assert outcome.result is AttemptResult.TIMED_OUT
    assert engine.count("status") == 1 + 2
