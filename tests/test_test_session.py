"""
Unit tests for the timed test session state machine
"""
import asyncio

import pytest

from app.models import TEST_CONFIG, ScoreStatus, Subject
from app.services.errors import InvalidAnswer, InvalidTransition
from app.services.llm import TransportFailure
from app.services.supply import QuestionSupply
from app.services.test_session import (
    Aborted,
    Completed,
    Feedback,
    Loading,
    Presenting,
    TestSession,
    scaled_score,
)

from conftest import FakeGenerator, make_question


def config_for(subject, **overrides):
    return TEST_CONFIG[subject].model_copy(update=overrides)


async def started_session(subject=Subject.SCIENCE, generator=None, **overrides):
    scores = []
    exits = []
    session = TestSession(
        subject,
        config_for(subject, **overrides),
        QuestionSupply(generator or FakeGenerator()),
        on_complete=scores.append,
        on_exit=lambda: exits.append(True),
    )
    await session.start()
    return session, scores, exits


class TestScoring:
    def test_score_samples(self):
        """Scaled scores for the reference samples"""
        assert scaled_score(9, 45) == 120
        assert scaled_score(36, 45) == 180
        assert scaled_score(0, 40) == 100
        assert scaled_score(40, 40) == 200

    def test_half_rounds_up(self):
        assert scaled_score(1, 8) == 113  # 12.5 -> 13

    @pytest.mark.asyncio
    async def test_low_score_does_not_pass(self):
        session, scores, _ = await started_session(Subject.MATH)
        session.correct_answers = 9
        session.questions_answered = 45
        score = session.complete()
        assert score.score == 120
        assert score.status == ScoreStatus.NOT_PASSED
        assert scores == [score]

    @pytest.mark.asyncio
    async def test_high_score_passes(self):
        session, scores, _ = await started_session(Subject.MATH)
        session.correct_answers = 36
        session.questions_answered = 45
        score = session.complete()
        assert score.score == 180
        assert score.status == ScoreStatus.PASS
        assert score.questions_correct == 36

    @pytest.mark.asyncio
    async def test_score_emitted_once(self):
        session, scores, _ = await started_session()
        first = session.complete()
        second = session.complete()
        assert first is second
        assert len(scores) == 1


class TestAnswering:
    @pytest.mark.asyncio
    async def test_start_presents_question(self):
        session, _, _ = await started_session()
        assert isinstance(session.state, Presenting)
        assert session.state.selected is None

    @pytest.mark.asyncio
    async def test_cannot_start_twice(self):
        session, _, _ = await started_session()
        with pytest.raises(InvalidTransition):
            await session.start()

    @pytest.mark.asyncio
    async def test_check_correct_answer(self):
        session, _, _ = await started_session()
        session.select("B")
        answered = session.check()

        assert answered.is_correct is True
        assert answered.user_answer == "B"
        assert session.questions_answered == 1
        assert session.correct_answers == 1
        assert isinstance(session.state, Feedback)
        assert session.answered == [answered]

    @pytest.mark.asyncio
    async def test_check_wrong_answer(self):
        session, _, _ = await started_session()
        session.select("C")
        answered = session.check()
        assert answered.is_correct is False
        assert session.correct_answers == 0
        assert session.questions_answered == 1

    @pytest.mark.asyncio
    async def test_reselecting_does_not_change_counters(self):
        """Selecting again only overwrites the pending choice"""
        session, _, _ = await started_session()
        session.select("A")
        session.select("A")
        session.select("C")
        assert session.state.selected == "C"
        assert session.questions_answered == 0
        assert session.correct_answers == 0
        assert session.answered == []

    @pytest.mark.asyncio
    async def test_selection_ignored_during_feedback(self):
        session, _, _ = await started_session()
        session.select("A")
        session.check()
        session.select("B")
        assert isinstance(session.state, Feedback)
        assert session.state.answered.user_answer == "A"

    @pytest.mark.asyncio
    async def test_check_requires_selection(self):
        session, _, _ = await started_session()
        with pytest.raises(InvalidTransition):
            session.check()

    @pytest.mark.asyncio
    async def test_option_must_exist(self):
        session, _, _ = await started_session()
        with pytest.raises(InvalidAnswer):
            session.select("Z")

    @pytest.mark.asyncio
    async def test_skip_records_unanswered(self):
        session, _, _ = await started_session()
        first = session.state.question
        await session.skip()

        assert session.questions_answered == 1
        assert session.answered[0].question is first
        assert session.answered[0].user_answer is None
        assert session.answered[0].is_correct is False
        assert isinstance(session.state, Presenting)
        assert session.state.question is not first

    @pytest.mark.asyncio
    async def test_next_requires_feedback(self):
        session, _, _ = await started_session()
        with pytest.raises(InvalidTransition):
            await session.advance()

    @pytest.mark.asyncio
    async def test_answered_count_matches_actions(self):
        """N check/skip actions give N answered records"""
        session, _, _ = await started_session(total_questions=10)
        for i in range(7):
            if i % 2:
                await session.skip()
            else:
                session.select("B")
                session.check()
                await session.advance()
            assert session.questions_answered == i + 1
            assert len(session.answered) == i + 1
        assert session.correct_answers == 4

    @pytest.mark.asyncio
    async def test_questions_are_not_repeated(self):
        generator = FakeGenerator(script=[make_question(qid="a"), make_question(qid="a"), make_question(qid="b")])
        session, _, _ = await started_session(generator=generator)
        await session.skip()
        assert session.state.question.id == "b"
        assert session.used_ids == {"a", "b"}


class TestCompletion:
    @pytest.mark.asyncio
    async def test_next_after_last_answer_completes(self):
        session, scores, _ = await started_session(total_questions=2)
        session.select("B")
        session.check()
        await session.advance()
        session.select("A")
        session.check()
        assert session.to_dict()["feedback"]["is_last"] is True
        await session.advance()

        assert isinstance(session.state, Completed)
        score = scores[0]
        assert score.questions_correct == 1
        assert score.total_questions == 2
        assert score.score == 150
        assert score.status == ScoreStatus.PASS

    @pytest.mark.asyncio
    async def test_skip_on_last_question_completes(self):
        """Answered count never exceeds the question budget"""
        session, scores, _ = await started_session(total_questions=3)
        for _ in range(3):
            await session.skip()
        assert isinstance(session.state, Completed)
        assert session.questions_answered == 3
        assert scores[0].score == 100
        with pytest.raises(InvalidTransition):
            await session.skip()
        assert session.questions_answered == 3

    @pytest.mark.asyncio
    async def test_review_lists_every_answer(self):
        session, _, _ = await started_session(total_questions=2)
        session.select("B")
        session.check()
        with pytest.raises(InvalidTransition):
            session.review()
        await session.advance()
        await session.skip()

        review = session.review()
        assert [r["is_correct"] for r in review] == [True, False]
        assert review[1]["skipped"] is True
        assert review[0]["correct_answer"] == "B"

    @pytest.mark.asyncio
    async def test_exit_emits_no_score(self):
        session, scores, exits = await started_session()
        session.exit()
        assert isinstance(session.state, Aborted)
        assert scores == []
        assert exits == [True]
        session.tick()
        assert session.time_spent == 0


class TestClock:
    @pytest.mark.asyncio
    async def test_time_limit_forces_completion(self):
        """A one-minute test completes on the 60th tick whatever the state"""
        session, scores, _ = await started_session(time_limit=1)
        session.select("A")
        for _ in range(59):
            session.tick()
        assert isinstance(session.state, Presenting)
        session.tick()

        assert session.time_spent == 60
        assert isinstance(session.state, Completed)
        assert scores[0].time_spent == 60
        assert scores[0].total_questions == 0
        session.tick()
        assert session.time_spent == 60

    @pytest.mark.asyncio
    async def test_expiry_during_feedback(self):
        session, scores, _ = await started_session(time_limit=1)
        session.select("B")
        session.check()
        session.time_spent = 59
        session.tick()
        assert isinstance(session.state, Completed)
        assert scores[0].questions_correct == 1

    @pytest.mark.asyncio
    async def test_run_clock_stops_at_expiry(self):
        session, scores, _ = await started_session(time_limit=1)
        ticks = []

        async def on_tick(s):
            ticks.append(s.time_spent)

        await asyncio.wait_for(session.run_clock(interval=0, on_tick=on_tick), timeout=5)

        assert ticks[-1] == 60
        assert len(ticks) == 60
        assert len(scores) == 1

    @pytest.mark.asyncio
    async def test_late_question_is_discarded(self):
        """Expiry while a question is loading wins over the late result"""
        release = asyncio.Event()

        class SlowGenerator(FakeGenerator):
            async def generate_question(self, subject, non_calculator=False):
                await release.wait()
                return await super().generate_question(subject, non_calculator)

        scores = []
        session = TestSession(
            Subject.SCIENCE,
            config_for(Subject.SCIENCE, time_limit=1),
            QuestionSupply(SlowGenerator()),
            on_complete=scores.append,
        )
        loading = asyncio.create_task(session.start())
        await asyncio.sleep(0)
        assert isinstance(session.state, Loading)

        session.time_spent = 59
        session.tick()
        release.set()
        await loading

        assert isinstance(session.state, Completed)
        assert len(scores) == 1


class TestCalculatorSection:
    @pytest.mark.asyncio
    async def test_math_switches_after_five_questions(self):
        """Questions 1-5 are non-calculator, the 6th onward allow a calculator"""
        generator = FakeGenerator()
        session, _, _ = await started_session(Subject.MATH, generator=generator)
        for _ in range(7):
            await session.skip()

        variants = [non_calc for _, non_calc in generator.calls]
        assert variants == [True] * 5 + [False] * 3
        assert session.state.question.is_non_calculator is False

    @pytest.mark.asyncio
    async def test_other_subjects_never_non_calculator(self):
        generator = FakeGenerator()
        session, _, _ = await started_session(Subject.SCIENCE, generator=generator)
        await session.skip()
        assert all(non_calc is False for _, non_calc in generator.calls)


class TestView:
    @pytest.mark.asyncio
    async def test_answer_hidden_until_checked(self):
        session, _, _ = await started_session()
        view = session.to_dict()
        assert view["state"] == "presenting"
        assert "correct_answer" not in view["question"]
        assert view["feedback"] is None

        session.select("A")
        session.check()
        view = session.to_dict()
        assert view["state"] == "feedback"
        assert view["feedback"]["correct_answer"] == "B"
        assert view["feedback"]["is_correct"] is False

    @pytest.mark.asyncio
    async def test_low_time_flag(self):
        session, _, _ = await started_session(time_limit=10)
        assert session.to_dict()["low_time"] is False
        session.time_spent = 301
        assert session.to_dict()["low_time"] is True

    @pytest.mark.asyncio
    async def test_loading_view_reports_retries(self):
        """While a question loads the view shows which attempt is running"""

        class StallingGenerator(FakeGenerator):
            def __init__(self):
                super().__init__(script=[TransportFailure(503, "down"), TransportFailure(503, "down")])
                self.release = asyncio.Event()

            async def generate_question(self, subject, non_calculator=False):
                if len(self.calls) == 2:
                    await self.release.wait()
                return await super().generate_question(subject, non_calculator)

        generator = StallingGenerator()
        session = TestSession(Subject.SCIENCE, config_for(Subject.SCIENCE), QuestionSupply(generator))
        loading = asyncio.create_task(session.start())
        await asyncio.sleep(0)

        view = session.to_dict()
        assert view["state"] == "loading"
        assert view["question"] is None
        assert view["loading"] == {"attempt": 3, "max_attempts": 5, "retrying": True}

        generator.release.set()
        await loading
        view = session.to_dict()
        assert view["state"] == "presenting"
        assert view["loading"] is None
