"""Unit tests for the auto-extraction / replug-erase workflow."""

from __future__ import annotations

import asyncio

from fakes import FakeClock, FakePresenter
from plugndump.core.presenter import WorkflowEvent
from plugndump.core.workflow import (
    ERASE_QUESTION,
    REPLUG_INSTRUCTIONS,
    WorkflowCoordinator,
    WorkflowPhase,
    WorkflowState,
)


class TestWorkflowState:
    def test_initially_idle(self):
        state = WorkflowState()
        assert state.phase == WorkflowPhase.IDLE
        assert not state.was_auto_extracted
        assert not state.awaiting_log_clear
        assert not state.cancelled

    def test_flags_are_mutually_exclusive(self):
        state = WorkflowState()
        state.mark_auto_extracted("COM5")
        assert state.was_auto_extracted and not state.awaiting_log_clear

        assert state.await_replug("COM5")
        assert state.awaiting_log_clear and not state.was_auto_extracted
        assert state.last_extracted_port == "COM5"

    def test_await_replug_requires_auto_extraction(self):
        state = WorkflowState()
        assert not state.await_replug("COM5")
        assert state.phase == WorkflowPhase.IDLE

    def test_single_replug_consumed(self):
        state = WorkflowState()
        state.mark_auto_extracted("COM5")
        state.await_replug("COM5")

        assert state.take_replug(["COM6"]) == "COM6"
        assert state.phase == WorkflowPhase.IDLE
        assert state.take_replug(["COM6"]) is None

    def test_several_new_devices_keep_waiting(self):
        state = WorkflowState()
        state.mark_auto_extracted("COM5")
        state.await_replug("COM5")

        assert state.take_replug(["COM5", "COM6"]) is None
        assert state.awaiting_log_clear

    def test_reset_is_idempotent(self):
        clock = FakeClock()
        state = WorkflowState(grace=1.0, clock=clock)
        state.mark_auto_extracted("COM5")
        state.await_replug("COM5")

        state.reset()
        first = state.as_dict()
        state.reset()

        assert state.as_dict() == first
        assert first["phase"] == "idle"
        assert first["last_extracted_port"] is None
        assert first["cancelled"] is True

    def test_cancellation_expires(self):
        clock = FakeClock()
        state = WorkflowState(grace=1.0, clock=clock)
        state.reset()
        assert state.cancelled

        clock.now += 0.99
        assert state.cancelled
        clock.now += 0.02
        assert not state.cancelled

    def test_replug_during_grace_window_not_erased(self):
        clock = FakeClock()
        state = WorkflowState(grace=1.0, clock=clock)
        state.reset()
        state.mark_auto_extracted("COM5")
        state.await_replug("COM5")

        assert state.take_replug(["COM5"]) is None
        assert state.phase == WorkflowPhase.IDLE

    def test_finish_auto_extraction_only_clears_auto_phase(self):
        state = WorkflowState()
        state.mark_auto_extracted("COM5")
        state.await_replug("COM5")
        state.finish_auto_extraction()
        assert state.awaiting_log_clear

        state.reset()
        state.mark_auto_extracted("COM5")
        state.finish_auto_extraction()
        assert state.phase == WorkflowPhase.IDLE


class TestWorkflowCoordinator:
    def test_accepted_erase_waits_for_replug(self):
        state = WorkflowState()
        state.mark_auto_extracted("COM5")
        presenter = FakePresenter(answers=[0, 0])

        waiting = asyncio.run(WorkflowCoordinator(state, presenter).post_extraction_prompt("COM5"))

        assert waiting is True
        assert state.awaiting_log_clear
        assert presenter.dialogs == [ERASE_QUESTION, REPLUG_INSTRUCTIONS]
        assert presenter.events == [WorkflowEvent.WAITING_FOR_REPLUG]

    def test_declined_erase(self):
        state = WorkflowState()
        state.mark_auto_extracted("COM5")
        presenter = FakePresenter(answers=[1])

        waiting = asyncio.run(WorkflowCoordinator(state, presenter).post_extraction_prompt("COM5"))

        assert waiting is False
        assert state.phase == WorkflowPhase.IDLE
        assert presenter.dialogs == [ERASE_QUESTION]
        assert presenter.events == []

    def test_no_prompt_without_auto_extraction(self):
        state = WorkflowState()
        presenter = FakePresenter()

        waiting = asyncio.run(WorkflowCoordinator(state, presenter).post_extraction_prompt("COM5"))

        assert waiting is False
        assert presenter.dialogs == []

    def test_reset_while_question_open(self):
        state = WorkflowState()
        state.mark_auto_extracted("COM5")

        class ResettingPresenter(FakePresenter):
            async def prompt(self, dialog):
                self.dialogs.append(dialog)
                state.reset()
                return 0

        presenter = ResettingPresenter()
        waiting = asyncio.run(WorkflowCoordinator(state, presenter).post_extraction_prompt("COM5"))

        assert waiting is False
        assert not state.awaiting_log_clear
        assert presenter.dialogs == [ERASE_QUESTION]
