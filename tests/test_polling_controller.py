"""
Tests for the mailbox view controller (session events, refresh, polling)
"""
from unittest.mock import MagicMock

import pytest

from conftest import FakeSession, make_mail

from application.use_cases.compose_usecase import ComposeMailUseCase
from application.use_cases.mailbox_sync_usecase import MailboxSyncUseCase
from config.settings import Settings
from domain.models import CursorPolicy
from infrastructure.auth.session import SessionState
from interface_adapters.controllers.polling_controller import PollingController


@pytest.fixture
def settings():
    return Settings(GRAPH_CLIENT_ID="app-id", SYNC_CURSOR_POLICY="max_received", INBOX_TOP=50)


@pytest.fixture
def fake_session(graph_client):
    return FakeSession(client=graph_client)


@pytest.fixture
def opener():
    return MagicMock()


@pytest.fixture
def controller(settings, fake_session, opener):
    return PollingController(settings, session=fake_session, opener=opener)


class TestWiring:
    def test_sync_built_from_settings(self, controller):
        assert isinstance(controller.sync, MailboxSyncUseCase)
        assert controller.sync.cursor_policy == CursorPolicy.MAX_RECEIVED
        assert controller.sync.inbox_top == 50

    def test_invalid_cursor_policy(self, fake_session):
        with pytest.raises(ValueError):
            PollingController(Settings(SYNC_CURSOR_POLICY="sometimes"), session=fake_session)

    def test_compose_shares_session(self, controller, fake_session):
        compose = controller.compose(MagicMock())
        assert isinstance(compose, ComposeMailUseCase)
        assert compose.session is fake_session


class TestSessionEvents:
    def test_navigation_signs_in_and_loads_once(self, controller, fake_session, graph_client):
        controller.on_navigated_to()

        assert fake_session.establish_calls == 1
        assert len(controller.sync.cache) == 100
        graph_client.list_inbox.assert_called_once()

        # a second sign-in notification does not start another load
        fake_session.set_state(SessionState.LOADING)
        fake_session.set_state(SessionState.SIGNED_IN)
        graph_client.list_inbox.assert_called_once()

    def test_signed_in_without_client_is_noop(self, settings, opener):
        session = FakeSession(client=None)
        controller = PollingController(settings, session=session, opener=opener)

        session.set_state(SessionState.SIGNED_IN)

        assert controller.sync.loaded is False

    def test_other_states_are_ignored(self, controller, fake_session, graph_client):
        fake_session.set_state(SessionState.LOADING)
        graph_client.list_inbox.assert_not_called()

    def test_renavigation_reloads(self, controller, graph_client):
        controller.on_navigated_to()
        controller.on_navigated_to()
        assert graph_client.list_inbox.call_count == 2
        assert len(controller.sync.cache) == 100


class TestActions:
    def test_refresh_reloads(self, controller, fake_session, graph_client):
        controller.on_navigated_to()
        controller.sync.cache.insert(0, make_mail(999))

        controller.refresh()

        assert graph_client.list_inbox.call_count == 2
        assert len(controller.sync.cache) == 100

    def test_run_once_polls(self, controller, graph_client):
        controller.on_navigated_to()
        graph_client.inbox_delta_since.return_value = [make_mail(1000, is_read=False)]

        assert controller.run_once() == 1
        assert controller.sync.cache[0].id == "msg-1000"

    def test_run_once_before_sign_in(self, controller, graph_client):
        assert controller.run_once() == 0
        graph_client.inbox_delta_since.assert_not_called()

    def test_go_to_webmail(self, controller, opener, settings):
        controller.go_to_webmail()
        opener.assert_called_once_with(settings.WEBMAIL_URL)
