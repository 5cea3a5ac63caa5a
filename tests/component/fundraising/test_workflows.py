"""
Component Tests for campaign creation, status toggle and faucet workflows
"""

import pytest

from microservices.fundraising_service.models import ZERO_HANDLE, CampaignForm, DecryptionKind
from microservices.fundraising_service.protocols import (
    CampaignValidationError,
    InvalidFormatError,
    TransactionFailureError,
    UnauthorizedError,
    ZeroAmountError,
)
from microservices.fundraising_service.workflows import (
    CampaignCreationWorkflow,
    CampaignStatusWorkflow,
    FaucetWorkflow,
)
from tests.contracts.fundraising.data_contract import (
    CREATOR_ADDRESS,
    OCEAN_GOAL_UNITS,
    OCEAN_TITLE,
    OUTSIDER_ADDRESS,
)


@pytest.fixture
def creation(mock_ledger, registry) -> CampaignCreationWorkflow:
    return CampaignCreationWorkflow(mock_ledger, registry)


@pytest.fixture
def status_workflow(mock_ledger, registry) -> CampaignStatusWorkflow:
    return CampaignStatusWorkflow(mock_ledger, registry)


class TestCampaignCreationValidation:
    """Local validation of the creation form"""

    def test_valid_form(self, creation, factory):
        form = factory.make_form(title="  Padded  ", goal="2.5")
        assert creation.validate(form) == ("Padded", form.description, 2_500_000)

    @pytest.mark.parametrize("title,description,field", [
        ("", "desc", "title"),
        ("   ", "desc", "title"),
        ("title", "", "description"),
    ])
    def test_required_fields(self, creation, factory, title, description, field):
        with pytest.raises(CampaignValidationError) as exc_info:
            creation.validate(factory.make_form(title=title, description=description))
        assert exc_info.value.field == field

    @pytest.mark.parametrize("goal", ["0", "", "0.000000"])
    def test_goal_must_be_positive(self, creation, factory, goal):
        with pytest.raises(ZeroAmountError):
            creation.validate(factory.make_form(goal=goal))

    def test_goal_format(self, creation, factory):
        with pytest.raises(InvalidFormatError):
            creation.validate(factory.make_form(goal="1.2.3"))

    @pytest.mark.asyncio
    async def test_invalid_form_never_reaches_ledger(self, creation, factory, mock_ledger):
        with pytest.raises(ZeroAmountError):
            await creation.submit(factory.make_form(goal="0"))
        assert mock_ledger.calls == []


class TestCampaignCreationSubmit:
    """Submission against the ledger"""

    @pytest.mark.asyncio
    async def test_submit_creates_and_invalidates(self, creation, registry, factory, mock_ledger):
        assert await registry.list() == []

        receipt = await creation.submit(factory.make_form())

        assert receipt.succeeded
        campaigns = await registry.list()
        assert [c.title for c in campaigns] == [OCEAN_TITLE]

    @pytest.mark.asyncio
    async def test_form_reset_after_success(self, creation, factory):
        await creation.submit(factory.make_form())
        assert creation.form == CampaignForm()

    @pytest.mark.asyncio
    async def test_held_form_state_is_used(self, creation, factory, mock_ledger):
        creation.form = factory.make_form(title="Held")
        await creation.submit()
        assert mock_ledger.campaigns[0].title == "Held"

    @pytest.mark.asyncio
    async def test_failed_submit_keeps_form(self, creation, factory, mock_ledger):
        mock_ledger.write_error = RuntimeError("nonce too low")
        form = factory.make_form()
        with pytest.raises(TransactionFailureError):
            await creation.submit(form)
        assert creation.form == form


class TestCampaignStatus:
    """Creator-only active toggle"""

    @pytest.mark.asyncio
    async def test_non_creator_is_unauthorized(self, creation, status_workflow, factory, mock_ledger):
        await creation.submit(factory.make_form())
        mock_ledger.switch_account(OUTSIDER_ADDRESS)

        with pytest.raises(UnauthorizedError) as exc_info:
            await status_workflow.set_active(0, False)
        assert exc_info.value.account == OUTSIDER_ADDRESS
        assert mock_ledger.campaigns[0].active is True

    @pytest.mark.asyncio
    async def test_creator_toggle_visible_after_invalidation(
        self, creation, status_workflow, registry, factory, mock_ledger
    ):
        await creation.submit(factory.make_form())
        assert (await registry.get(0)).active is True

        await status_workflow.set_active(0, False)
        assert (await registry.get(0)).active is False

        await status_workflow.set_active(0, True)
        assert (await registry.get(0)).active is True


class TestFaucet:
    @pytest.mark.asyncio
    async def test_claim(self, mock_ledger, registry, mock_encryption):
        await registry.list()
        calls = len(mock_ledger.calls)

        receipt = await FaucetWorkflow(mock_ledger).claim()

        assert receipt.succeeded
        assert mock_ledger.faucet_claims == [CREATOR_ADDRESS]
        assert mock_encryption.encrypt_calls == []
        await registry.list()
        assert mock_ledger.calls[calls:] == ["claim_faucet"]


class TestEndToEnd:
    """Full scenarios through FundraisingService"""

    @pytest.mark.asyncio
    async def test_create_save_the_ocean(self, service, factory):
        result = await service.create_campaign(factory.make_form())
        assert result.success
        assert result.status_message == "Campaign created successfully"

        (view,) = await service.list_campaigns()
        assert view.id == 0
        assert view.title == OCEAN_TITLE
        assert view.goal == OCEAN_GOAL_UNITS
        assert view.goal_display == "1"
        assert view.active is True
        assert view.raised_handle == ZERO_HANDLE

    @pytest.mark.asyncio
    async def test_status_toggle_by_creator_only(self, service, factory, mock_ledger):
        await service.create_campaign(factory.make_form())

        mock_ledger.switch_account(OUTSIDER_ADDRESS)
        result = await service.set_campaign_active(0, False)
        assert not result.success
        assert result.error_code == "unauthorized"

        mock_ledger.switch_account(CREATOR_ADDRESS)
        result = await service.set_campaign_active(0, False)
        assert result.success
        assert result.status_message == "Campaign deactivated"
        assert (await service.list_campaigns())[0].active is False

        assert (await service.set_campaign_active(0, True)).success
        assert (await service.list_campaigns())[0].active is True

    @pytest.mark.asyncio
    async def test_donate_then_decrypt(self, service, factory, mock_encryption):
        await service.create_campaign(factory.make_form())
        await service.decrypt(0, DecryptionKind.RAISED)
        assert service.decryptions.value(0, DecryptionKind.RAISED) == 0

        result = await service.donate(0, "2.5")
        assert result.success
        assert result.status_message == "Donation confirmed"
        assert result.data["amount_units"] == 2_500_000
        assert service.decryptions.value(0, DecryptionKind.RAISED) is None
        assert service.decryptions.value(0, DecryptionKind.POINTS) is None

        phases = []
        service.decryptions.add_listener(lambda key, phase: phases.append(phase.value))
        result = await service.decrypt(0, DecryptionKind.RAISED)

        assert result.success
        assert phases == ["requesting", "awaiting_signature", "awaiting_relayer", "resolved"]
        (view,) = await service.list_campaigns()
        assert view.raised == 2_500_000
        assert view.raised_display == "2.5"

        await service.decrypt(0, DecryptionKind.POINTS)
        assert (await service.list_campaigns())[0].points == 2_500_000
        assert len(mock_encryption.decrypt_calls) == 2
