from __future__ import annotations

from datetime import datetime, timezone

import pytest
from sqlalchemy.orm import Session, sessionmaker

from sprite.db import AssistantPersona, OnboardingStep, SkillLevel
from sprite.models.onboarding_event import OnboardingEvent
from sprite.onboarding import actions
from sprite.onboarding.cache import register_invalidator
from sprite.onboarding.errors import (
    AlreadyCompleted,
    AssistantNotFound,
    PrerequisiteNotMet,
    Unauthenticated,
)
from sprite.onboarding.guard import can_access_step, load_active_user, resolve_step
from tests.helpers import assistant_id, at_step, load_user, update_user


@pytest.mark.asyncio
async def test_get_assistant_options_sorted_by_name(session_local: sessionmaker[Session]) -> None:
    options = await actions.get_assistant_options()
    assert [o.name for o in options] == ["Atlas", "Nova", "Sage"]
    assert options[1].slug == "nova-feminine"


@pytest.mark.asyncio
async def test_select_assistant_advances_to_quiz(session_local: sessionmaker[Session]) -> None:
    paths: list[str] = []
    register_invalidator(paths.append)
    aid = assistant_id(session_local)

    result = await actions.select_assistant(1, aid)

    assert result.next_step is OnboardingStep.SKILL_QUIZ
    assert result.next_href == "/onboarding/skill-quiz"
    user = load_user(session_local)
    assert user.assistant_id == aid
    assert user.onboarding_step is OnboardingStep.SKILL_QUIZ
    assert paths == ["/onboarding"]
    with session_local() as session:
        event = session.query(OnboardingEvent).one()
        assert event.event == "assistant_selected"
        assert event.meta_json == {"assistant_id": aid}


@pytest.mark.asyncio
async def test_select_assistant_unknown(session_local: sessionmaker[Session]) -> None:
    with pytest.raises(AssistantNotFound):
        await actions.select_assistant(1, 999)
    assert load_user(session_local).assistant_id is None


@pytest.mark.asyncio
async def test_actions_require_session_user() -> None:
    with pytest.raises(Unauthenticated):
        await actions.select_assistant(None, 1)
    with pytest.raises(Unauthenticated):
        await actions.complete_onboarding(None)


@pytest.mark.asyncio
async def test_actions_on_missing_user(session_local: sessionmaker[Session]) -> None:
    with pytest.raises(Unauthenticated):
        await actions.select_persona(42, "calm")


@pytest.mark.asyncio
@pytest.mark.parametrize("persona", list(AssistantPersona))
async def test_persona_requires_assistant(session_local: sessionmaker[Session], persona: AssistantPersona) -> None:
    with pytest.raises(PrerequisiteNotMet):
        await actions.select_persona(1, persona)
    assert load_user(session_local).assistant_persona is None


@pytest.mark.asyncio
async def test_persona_rejects_unknown_value(session_local: sessionmaker[Session]) -> None:
    update_user(session_local, assistant_id=assistant_id(session_local))
    with pytest.raises(ValueError):
        await actions.select_persona(1, "grumpy")


@pytest.mark.asyncio
async def test_select_persona_advances_to_intro(session_local: sessionmaker[Session]) -> None:
    at_step(session_local, OnboardingStep.PERSONA, assistant_id=assistant_id(session_local))

    result = await actions.select_persona(1, "direct")

    assert result.next_step is OnboardingStep.GUIDED_INTRO
    assert result.next_href == "/onboarding/guided-intro"
    user = load_user(session_local)
    assert user.assistant_persona is AssistantPersona.DIRECT
    assert user.onboarding_step is OnboardingStep.GUIDED_INTRO


@pytest.mark.asyncio
async def test_reselecting_assistant_after_persona_keeps_intro(session_local: sessionmaker[Session]) -> None:
    nova = assistant_id(session_local)
    await actions.select_assistant(1, nova)
    await actions.select_persona(1, "calm")

    result = await actions.select_assistant(1, assistant_id(session_local, "atlas-masculine"))

    assert result.next_step is OnboardingStep.SKILL_QUIZ
    state = await load_active_user(1)
    assert state.assistant_persona is AssistantPersona.CALM
    assert state.onboarding_step is OnboardingStep.GUIDED_INTRO
    assert resolve_step(state) is OnboardingStep.GUIDED_INTRO
    assert can_access_step(state, OnboardingStep.GUIDED_INTRO)
    assert can_access_step(state, OnboardingStep.SKILL_QUIZ)
    nav = await actions.navigate_to_step(1, OnboardingStep.GUIDED_INTRO)
    assert nav.next_href == "/onboarding/guided-intro"


@pytest.mark.asyncio
async def test_complete_requires_assistant_and_persona(session_local: sessionmaker[Session]) -> None:
    with pytest.raises(PrerequisiteNotMet):
        await actions.complete_onboarding(1)
    update_user(session_local, assistant_id=assistant_id(session_local))
    with pytest.raises(PrerequisiteNotMet):
        await actions.complete_onboarding(1)
    assert load_user(session_local).onboarding_completed_at is None


@pytest.mark.asyncio
async def test_complete_sets_timestamp_and_redirects_home(session_local: sessionmaker[Session]) -> None:
    paths: list[str] = []
    register_invalidator(paths.append)
    at_step(
        session_local,
        OnboardingStep.GUIDED_INTRO,
        assistant_id=assistant_id(session_local),
        assistant_persona=AssistantPersona.KIND,
    )

    result = await actions.complete_onboarding(1)

    assert result.completed is True
    assert result.redirect_to == "/home"
    user = load_user(session_local)
    assert user.onboarding_completed_at is not None
    assert user.onboarding_step is None
    assert user.assistant_id is not None and user.assistant_persona is not None
    assert paths == ["/onboarding", "/home"]

    with pytest.raises(AlreadyCompleted):
        await actions.complete_onboarding(1)
    with pytest.raises(AlreadyCompleted):
        await actions.select_assistant(1, assistant_id(session_local))


@pytest.mark.asyncio
async def test_reset_is_idempotent(session_local: sessionmaker[Session]) -> None:
    update_user(
        session_local,
        assistant_id=assistant_id(session_local),
        assistant_persona=AssistantPersona.CALM,
        skill_level=SkillLevel.ADVANCED,
        onboarding_completed_at=datetime.now(timezone.utc),
    )

    first = await actions.reset_onboarding(1)
    after_first = load_user(session_local)
    second = await actions.reset_onboarding(1)
    after_second = load_user(session_local)

    assert first == second
    assert first.next_href == "/onboarding/gender"
    for user in (after_first, after_second):
        assert user.assistant_id is None
        assert user.assistant_persona is None
        assert user.onboarding_completed_at is None
        assert user.skill_level is SkillLevel.BEGINNER
        assert user.onboarding_step is OnboardingStep.WELCOME


@pytest.mark.asyncio
async def test_persist_step_moves_forward_only(session_local: sessionmaker[Session]) -> None:
    at_step(session_local, OnboardingStep.SKILL_QUIZ, assistant_id=assistant_id(session_local))

    assert await actions.persist_step(1, "persona") is OnboardingStep.PERSONA
    assert await actions.persist_step(1, OnboardingStep.GENDER) is OnboardingStep.PERSONA
    assert load_user(session_local).onboarding_step is OnboardingStep.PERSONA


@pytest.mark.asyncio
async def test_persist_step_refuses_locked_step(session_local: sessionmaker[Session]) -> None:
    with pytest.raises(PrerequisiteNotMet):
        await actions.persist_step(1, OnboardingStep.GUIDED_INTRO)
    assert load_user(session_local).onboarding_step is None


@pytest.mark.asyncio
async def test_navigate_to_step(session_local: sessionmaker[Session]) -> None:
    at_step(session_local, OnboardingStep.WELCOME)

    result = await actions.navigate_to_step(1, OnboardingStep.GENDER)
    assert result.allowed is True
    assert result.next_href == "/onboarding/gender"

    with pytest.raises(PrerequisiteNotMet, match="skip ahead"):
        await actions.navigate_to_step(1, OnboardingStep.PERSONA)

    at_step(session_local, OnboardingStep.GENDER)
    with pytest.raises(PrerequisiteNotMet, match="previous steps"):
        await actions.navigate_to_step(1, OnboardingStep.SKILL_QUIZ)
    assert load_user(session_local).onboarding_step is OnboardingStep.GENDER

    back = await actions.navigate_to_step(1, OnboardingStep.WELCOME)
    assert back.next_href == "/onboarding/welcome"
