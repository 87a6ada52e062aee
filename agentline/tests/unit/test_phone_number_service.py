"""Unit tests for PhoneNumberService."""

import pytest

from agentline.core.exceptions import (
    ConfigurationError,
    NotFoundError,
    RetellAPIError,
    TelephonyError,
    ValidationError,
)
from agentline.domain.services.phone_number_service import ACTIVE_NICKNAME, PhoneNumberService


@pytest.fixture
def make_service(mock_telephony, mock_retell, mock_payments, agent_repo, phone_repo):
    def _make(app_url="https://app.test", price_id="price_phone", payments=mock_payments):
        return PhoneNumberService(
            telephony=mock_telephony,
            retell=mock_retell,
            payments=payments,
            agents=agent_repo,
            phone_numbers=phone_repo,
            app_url=app_url,
            sip_trunk_uri="retell.pstn.twilio.com",
            phone_number_price_id=price_id,
        )

    return _make


@pytest.fixture
async def owned(seed):
    client = await seed.client()
    agent = await seed.agent(client.id)
    number = await seed.phone_number(client.id, "+15550001111", "PN1")
    return client, agent, number


class TestSearch:
    async def test_area_code_required_for_us(self, make_service):
        with pytest.raises(ValidationError, match="Area code"):
            await make_service().search("us")

    async def test_unsupported_country(self, make_service, mock_telephony):
        mock_telephony.search_available_numbers.side_effect = TelephonyError(
            "Twilio API error 404", 404, details={"code": 20404}
        )

        with pytest.raises(ValidationError, match="not available"):
            await make_service().search("ZZ")

    async def test_passes_through_results(self, make_service, mock_telephony):
        mock_telephony.search_available_numbers.return_value = [{"phone_number": "+447700900000"}]

        assert await make_service().search("gb") == [{"phone_number": "+447700900000"}]
        mock_telephony.search_available_numbers.assert_awaited_once_with("GB", None)


class TestPurchaseCheckout:
    async def test_creates_subscription_checkout(self, make_service, mock_payments):
        session = await make_service().create_purchase_checkout("c1", "owner@example.com", "+15550001111")

        assert session["id"] == "cs_test_1"
        kwargs = mock_payments.create_checkout_session.await_args.kwargs
        assert kwargs["price_id"] == "price_phone"
        assert kwargs["metadata"] == {
            "user_id": "c1",
            "phone_number": "+15550001111",
            "type": "phone_number_subscription",
        }

    async def test_requires_price(self, make_service):
        with pytest.raises(ConfigurationError):
            await make_service(price_id="").create_purchase_checkout("c1", None, "+15550001111")


class TestLink:
    """Test suite for PhoneNumberService.link."""

    async def test_links_to_agent(self, make_service, mock_retell, phone_repo, owned):
        client, agent, number = owned

        await make_service().link(client.id, number.id, agent.id)

        mock_retell.update_phone_number.assert_awaited_once_with(
            "+15550001111", inbound_agent_id="agent_retell_1", nickname=ACTIVE_NICKNAME
        )
        assert (await phone_repo.get(number.id)).agent_id == agent.id

    async def test_imports_unregistered_number(self, make_service, mock_retell, owned):
        """Test a number unknown to Retell is imported with the webhook URL."""
        client, agent, number = owned
        mock_retell.update_phone_number.side_effect = RetellAPIError("Retell API error 404", 404)

        await make_service().link(client.id, number.id, agent.id)

        mock_retell.import_phone_number.assert_awaited_once_with(
            "+15550001111",
            termination_uri="retell.pstn.twilio.com",
            inbound_agent_id="agent_retell_1",
            inbound_webhook_url="https://app.test/api/v1/webhooks/retell",
        )

    async def test_no_webhook_url_without_https(self, make_service, mock_retell, owned):
        client, agent, number = owned
        mock_retell.update_phone_number.side_effect = RetellAPIError("Retell API error 404", 404)

        await make_service(app_url="http://localhost:8080").link(client.id, number.id, agent.id)

        assert mock_retell.import_phone_number.await_args.kwargs["inbound_webhook_url"] is None

    async def test_unlink(self, make_service, mock_retell, phone_repo, seed):
        client = await seed.client()
        agent = await seed.agent(client.id)
        number = await seed.phone_number(client.id, "+15550001111", "PN1", agent_id=agent.id)

        await make_service().link(client.id, number.id, None)

        mock_retell.update_phone_number.assert_awaited_once_with("+15550001111", inbound_agent_id=None)
        assert (await phone_repo.get(number.id)).agent_id is None

    async def test_foreign_agent_is_not_found(self, make_service, seed, owned):
        client, _, number = owned
        other = await seed.client(email="other@example.com")
        foreign = await seed.agent(other.id, retell_agent_id="agent_other")

        with pytest.raises(NotFoundError):
            await make_service().link(client.id, number.id, foreign.id)


class TestRelease:
    async def test_cleans_up_everywhere(self, make_service, mock_retell, mock_telephony, phone_repo, owned):
        client, _, number = owned

        await make_service().release(client.id, number.id)

        mock_retell.delete_phone_number.assert_awaited_once_with("+15550001111")
        mock_telephony.release_number.assert_awaited_once_with("PN1")
        assert await phone_repo.get(number.id) is None

    async def test_provider_failures_do_not_block_delete(
        self, make_service, mock_retell, mock_telephony, phone_repo, owned
    ):
        """Test best-effort cleanup still removes the record."""
        client, _, number = owned
        mock_retell.delete_phone_number.side_effect = RetellAPIError("Retell API error 404", 404)
        mock_telephony.release_number.side_effect = TelephonyError("Twilio API error 404", 404)

        await make_service().release(client.id, number.id)

        assert await phone_repo.get(number.id) is None

    async def test_other_clients_number_is_not_found(self, make_service, seed, owned):
        _, _, number = owned
        other = await seed.client(email="other@example.com")

        with pytest.raises(NotFoundError):
            await make_service().release(other.id, number.id)
