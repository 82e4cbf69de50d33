from datetime import datetime, timedelta

import pytest

from app.core.config import settings
from app.core.exceptions import AIServiceError
from app.flow import dispatcher
from app.flow.stages import Stage
from app.models.plan import PlanType
from app.models.user import User, Subscription, SubscriptionStatus, PaymentSession
from app.schemas.webhook import InboundEvent
from app.services import user_service
from utils.constants import (
    PAYLOAD_I_AGREE,
    PAYLOAD_SUBSCRIBE_WEEKLY,
    PAYLOAD_SUBSCRIBE_MONTHLY,
    PAYLOAD_RETRY_NUMBER,
    CONSENT_REMINDER,
    CONSENT_ACCEPTED_MESSAGE,
    INVALID_NUMBER_MESSAGE,
    TRIAL_NUMBER_TAKEN_MESSAGE,
    TRIAL_LIMIT_REACHED_MESSAGE,
    DAILY_LIMIT_REACHED_MESSAGE,
    AWAITING_PAYMENT_MESSAGE,
    CANCEL_PAYMENT_MESSAGE,
    PAYMENT_NUMBER_PROMPT,
    PAYMENT_ALREADY_PENDING_MESSAGE,
    PLAN_REQUIRED_MESSAGE,
    RETRY_NUMBER_MESSAGE,
    SUBSCRIPTION_EXPIRED_MESSAGE,
    AI_APOLOGY_MESSAGE,
    GENERIC_ERROR_MESSAGE,
)

ALL_STAGES = {stage.value for stage in Stage}


async def text(body, identity="psid-1"):
    return await dispatcher.dispatch_event(InboundEvent(sender_identity=identity, text=body))


async def postback(payload, identity="psid-1"):
    return await dispatcher.dispatch_event(InboundEvent(sender_identity=identity, postback_payload=payload))


async def load(identity="psid-1"):
    return await user_service.get_user(identity)


async def store(fake_db, **fields):
    fields.setdefault("identity", "psid-1")
    fields.setdefault("consent_granted_at", datetime.utcnow())
    user = User(**fields)
    await fake_db.users.insert_one(user.to_document())
    return user


@pytest.mark.asyncio
async def test_onboarding_to_trial(fake_db, sent, ai, quota_settings):
    await text("Hi")
    user = await load()
    assert user.stage == Stage.INITIAL.value
    assert sent.buttons("psid-1") == [PAYLOAD_I_AGREE]
    assert ai.prompts == []

    sent.clear()
    await postback(PAYLOAD_I_AGREE)
    assert (await load()).stage == Stage.AWAITING_PHONE.value
    assert sent.texts() == [CONSENT_ACCEPTED_MESSAGE]

    await text("0921234567")
    user = await load()
    assert user.stage == Stage.TRIAL.value
    assert user.has_used_trial
    assert user.trial_mobile_number == "0921234567"

    sent.clear()
    await text("What is photosynthesis?")
    assert ai.prompts == ["What is photosynthesis?"]
    assert sent.texts() == [ai.answer]
    assert (await load()).trial_messages_used_today == 1

    assert (await load()).stage in ALL_STAGES


@pytest.mark.asyncio
async def test_first_contact_is_not_routed(fake_db, sent, ai):
    await text("0921234567")
    assert (await load()).stage == Stage.INITIAL.value
    assert (await load()).trial_mobile_number is None


@pytest.mark.asyncio
async def test_text_before_consent_gets_reminder(fake_db, sent, ai):
    await text("Hi")
    sent.clear()

    await text("Tell me a joke")

    assert sent.texts() == [CONSENT_REMINDER]
    assert ai.prompts == []


@pytest.mark.asyncio
async def test_commands_work_before_consent(fake_db, sent):
    await text("Hi")
    sent.clear()

    response = await text("help")

    assert response["status"] == "success"
    assert CONSENT_REMINDER not in sent.texts()


@pytest.mark.asyncio
async def test_invalid_trial_number(fake_db, sent, quota_settings):
    await store(fake_db, stage=Stage.AWAITING_PHONE)

    await text("12345")

    assert sent.texts() == [INVALID_NUMBER_MESSAGE]
    assert (await load()).stage == Stage.AWAITING_PHONE.value


@pytest.mark.asyncio
async def test_trial_number_used_by_another_account(fake_db, sent, quota_settings):
    await store(fake_db, identity="psid-old", stage=Stage.TRIAL, trial_mobile_number="0921234567", has_used_trial=True)
    await store(fake_db, stage=Stage.AWAITING_PHONE)

    await text("0921234567")

    assert (await load()).stage == Stage.AWAITING_PHONE.value
    assert not (await load()).has_used_trial
    assert sent.texts()[0] == TRIAL_NUMBER_TAKEN_MESSAGE
    assert sent.buttons() == [PAYLOAD_RETRY_NUMBER, PAYLOAD_SUBSCRIBE_WEEKLY, PAYLOAD_SUBSCRIBE_MONTHLY]


@pytest.mark.asyncio
async def test_retry_number_clears_trial_number(fake_db, sent):
    await store(fake_db, stage=Stage.AWAITING_PHONE, trial_mobile_number="0921234567")

    await postback(PAYLOAD_RETRY_NUMBER)

    assert (await load()).trial_mobile_number is None
    assert (await load()).stage == Stage.AWAITING_PHONE.value
    assert sent.texts() == [RETRY_NUMBER_MESSAGE]


@pytest.mark.asyncio
async def test_fourth_trial_message_is_denied_with_offer(fake_db, sent, ai, quota_settings):
    await store(fake_db, stage=Stage.TRIAL, has_used_trial=True, trial_messages_used_today=0,
                quota_reset_at=datetime.utcnow())

    for question in ["one", "two", "three"]:
        await text(question)
    sent.clear()
    await text("four")

    assert len(ai.prompts) == 3
    assert (await load()).trial_messages_used_today == 3
    assert sent.texts()[0] == TRIAL_LIMIT_REACHED_MESSAGE
    assert PAYLOAD_SUBSCRIBE_WEEKLY in sent.buttons()


@pytest.mark.asyncio
async def test_subscriber_over_limit_gets_no_offer(fake_db, sent, ai, quota_settings):
    await store(
        fake_db,
        stage=Stage.SUBSCRIBED,
        daily_message_count=30,
        quota_reset_at=datetime.utcnow(),
        subscription=Subscription(plan_type=PlanType.WEEKLY, status=SubscriptionStatus.ACTIVE,
                                  expiry_date=datetime.utcnow() + timedelta(days=3)),
    )

    await text("question")

    assert sent.texts() == [DAILY_LIMIT_REACHED_MESSAGE]
    assert sent.buttons() == []
    assert (await load()).stage == Stage.SUBSCRIBED.value


@pytest.mark.asyncio
async def test_ai_failure_sends_apology_and_keeps_stage(fake_db, sent, ai, quota_settings):
    ai.error = AIServiceError("provider down")
    await store(fake_db, stage=Stage.TRIAL, quota_reset_at=datetime.utcnow())

    await text("question")

    assert sent.texts() == [AI_APOLOGY_MESSAGE]
    assert (await load()).stage == Stage.TRIAL.value


@pytest.mark.asyncio
async def test_message_too_long(fake_db, sent, ai, quota_settings):
    await store(fake_db, stage=Stage.TRIAL, quota_reset_at=datetime.utcnow())

    await text("x" * (settings.MAX_MESSAGE_LENGTH + 1))

    assert ai.prompts == []
    assert (await load()).trial_messages_used_today == 0


@pytest.mark.asyncio
async def test_subscribe_then_pay_then_cancel(fake_db, sent, gateway, quota_settings):
    await store(fake_db, stage=Stage.TRIAL, has_used_trial=True, trial_mobile_number="0921234567",
                payment_mobile_number="0920000000")

    await postback(PAYLOAD_SUBSCRIBE_MONTHLY)
    user = await load()
    assert user.stage == Stage.AWAITING_PHONE_FOR_PAYMENT.value
    assert user.last_selected_plan_type == PlanType.MONTHLY.value
    assert user.payment_mobile_number is None
    assert sent.texts() == [PAYMENT_NUMBER_PROMPT]

    # the trial number is accepted for payment, no trial-history check
    await text("0921234567")
    user = await load()
    assert user.stage == Stage.AWAITING_PAYMENT.value
    assert gateway.requests[0]["plan_type"] == "monthly"

    sent.clear()
    await text("are you there?")
    assert sent.texts() == [AWAITING_PAYMENT_MESSAGE]

    await postback(PAYLOAD_SUBSCRIBE_WEEKLY)
    assert sent.texts()[-1] == PAYMENT_ALREADY_PENDING_MESSAGE
    assert len(gateway.requests) == 1

    await text("cancel")
    user = await load()
    assert user.stage == Stage.TRIAL.value
    assert user.payment_session is None
    assert sent.texts()[-1] == CANCEL_PAYMENT_MESSAGE


@pytest.mark.asyncio
async def test_payment_number_without_plan(fake_db, sent, gateway):
    await store(fake_db, stage=Stage.AWAITING_PHONE_FOR_PAYMENT)

    await text("0921234567")

    assert gateway.requests == []
    assert sent.texts()[0] == PLAN_REQUIRED_MESSAGE
    assert (await load()).stage == Stage.AWAITING_PHONE_FOR_PAYMENT.value


@pytest.mark.asyncio
async def test_reference_ids_are_unique(fake_db, sent, gateway, quota_settings):
    for n in range(3):
        identity = f"psid-{n}"
        await store(fake_db, identity=identity, stage=Stage.AWAITING_PHONE_FOR_PAYMENT,
              last_selected_plan_type=PlanType.WEEKLY)
        await text("0921234567", identity=identity)

    references = [doc["reference_id"] for doc in fake_db.payment_requests.docs]
    assert len(references) == 3
    assert len(set(references)) == 3


@pytest.mark.asyncio
async def test_subscribe_requires_consent(fake_db, sent):
    await text("Hi")
    sent.clear()

    await postback(PAYLOAD_SUBSCRIBE_WEEKLY)

    assert (await load()).stage == Stage.INITIAL.value
    assert sent.texts() == [CONSENT_REMINDER]


@pytest.mark.asyncio
async def test_lapsed_subscription_is_expired_on_next_event(fake_db, sent, ai, quota_settings):
    await store(
        fake_db,
        stage=Stage.SUBSCRIBED,
        subscription=Subscription(plan_type=PlanType.WEEKLY, status=SubscriptionStatus.ACTIVE,
                                  expiry_date=datetime.utcnow() - timedelta(minutes=1)),
    )

    await text("question")

    user = await load()
    assert user.stage == Stage.SUBSCRIPTION_EXPIRED.value
    assert user.subscription.status == SubscriptionStatus.EXPIRED
    assert sent.texts()[0] == SUBSCRIPTION_EXPIRED_MESSAGE
    assert ai.prompts == []

    # renewal is allowed from the expired stage
    await postback(PAYLOAD_SUBSCRIBE_WEEKLY)
    assert (await load()).stage == Stage.AWAITING_PHONE_FOR_PAYMENT.value


@pytest.mark.asyncio
async def test_unknown_postback_is_ignored(fake_db, sent):
    await store(fake_db, stage=Stage.TRIAL)

    response = await postback("SOMETHING_ELSE")

    assert response["status"] == "ignored"
    assert sent.deliveries == []


@pytest.mark.asyncio
async def test_unexpected_failure_sends_generic_error(fake_db, sent, monkeypatch):
    await store(fake_db, stage=Stage.TRIAL)

    async def broken(user, text):
        raise RuntimeError("boom")

    monkeypatch.setattr(dispatcher, "route_by_stage", broken)

    response = await text("question")

    assert response["status"] == "error"
    assert sent.texts() == [GENERIC_ERROR_MESSAGE]


@pytest.mark.asyncio
async def test_stale_write_is_caught(fake_db, sent, ai, quota_settings, monkeypatch):
    await store(fake_db, stage=Stage.TRIAL, quota_reset_at=datetime.utcnow())
    original = user_service.get_user

    async def stale_get_user(identity):
        user = await original(identity)
        # another event saved in between
        fake_db.users.docs[0]["version"] += 1
        return user

    monkeypatch.setattr(user_service, "get_user", stale_get_user)

    response = await text("question")

    assert response["status"] == "error"
    assert ai.prompts == []
    assert sent.texts() == [GENERIC_ERROR_MESSAGE]


@pytest.mark.asyncio
async def test_retired_stage_user_is_routed(fake_db, sent, ai, quota_settings):
    await fake_db.users.insert_one({
        "identity": "psid-1",
        "stage": "payment_failed",
        "consent_granted_at": datetime.utcnow(),
        "quota_reset_at": datetime.utcnow(),
        "version": 0,
    })

    await text("question")

    assert ai.prompts == ["question"]
    assert fake_db.users.docs[0]["stage"] == Stage.TRIAL.value
