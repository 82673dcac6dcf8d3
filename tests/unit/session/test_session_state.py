"""Tests for the observable session state store."""

from vitrine.clock import ManualClock
from vitrine.session.models import Session
from vitrine.session.state import LastError, SessionState, SessionStateStore


class TestSessionStateStore:
    """Snapshots and subscriptions."""

    def test_initial_state(self) -> None:
        """Starts loading with no session."""
        state = SessionStateStore().state

        assert state == SessionState()
        assert state.is_loading is True
        assert state.is_authenticated is False

    def test_set_session(self, session: Session) -> None:
        """Setting a session authenticates."""
        store = SessionStateStore()
        store.set_session(session)

        assert store.state.session == session
        assert store.state.is_authenticated is True

    def test_snapshots_are_immutable(self, session: Session) -> None:
        """Old snapshots are unaffected by later updates."""
        store = SessionStateStore()
        before = store.state

        store.set_session(session)

        assert before.session is None
        assert store.state is not before

    def test_subscribe_and_unsubscribe(self, session: Session) -> None:
        """Listeners see each change until they unsubscribe."""
        store = SessionStateStore()
        seen: list[SessionState] = []
        unsubscribe = store.subscribe(seen.append)

        store.set_session(session)
        store.set_loading(False)
        unsubscribe()
        store.set_error("late")

        assert len(seen) == 2
        assert seen[-1].is_loading is False
        unsubscribe()

    def test_no_notification_without_change(self) -> None:
        """Setting the same value does not notify."""
        store = SessionStateStore()
        seen: list[SessionState] = []
        store.subscribe(seen.append)

        store.set_loading(True)
        store.set_error(None)

        assert seen == []

    def test_failing_listener_does_not_block_others(self) -> None:
        """One broken listener is logged, the rest still run."""
        store = SessionStateStore()
        seen: list[SessionState] = []

        def broken(state: SessionState) -> None:
            raise RuntimeError("listener bug")

        store.subscribe(broken)
        store.subscribe(seen.append)

        store.set_error("boom")

        assert len(seen) == 1

    def test_last_error(self, clock: ManualClock) -> None:
        """Last error carries a timestamp from the clock."""
        store = SessionStateStore(clock=clock)

        store.set_last_error("render failed", "/apps/chess")

        assert store.state.last_error == LastError(
            timestamp=clock(), message="render failed", path="/apps/chess"
        )
        store.clear_last_error()
        assert store.state.last_error is None

    def test_clear_keeps_loading_and_last_error(self, session: Session) -> None:
        """Clearing drops session and error only."""
        store = SessionStateStore()
        store.set_session(session)
        store.set_error("x")
        store.set_loading(False)
        store.set_last_error("crash", "/")

        store.clear()

        assert store.state.session is None
        assert store.state.error is None
        assert store.state.is_loading is False
        assert store.state.last_error is not None
