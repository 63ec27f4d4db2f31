import logging
from typing import Callable, List, Optional
from sqlalchemy.orm import Session

from app.core.clock import utcnow
from app.core.config import settings
from app.core.constants import ANSWER_LETTERS, ExamAttemptStatusEnum, LanguageEnum
from app.core.exceptions import (
    ExamNotFound, IncompleteExamExists, InvalidAnswer, InvalidLanguage, QuestionNotInAttempt
)
from app.crud.exam_answer import exam_answer as crud_exam_answer
from app.crud.exam_attempt import exam_attempt as crud_exam_attempt
from app.crud.question import question as crud_question
from app.models.exam_answer import ExamAnswer
from app.models.exam_attempt import ExamAttempt
from app.schemas.exam_attempt import (
    AnswerSubmitResponse, ExamAttempt as ExamAttemptSchema, ExamResult, ExamReview, ExamSession,
    ExamStats, ReviewQuestion
)
from app.schemas.question import PresentedQuestion
from app.schemas.user import UserContext
from app.services.entitlement import EntitlementService, entitlement_service
from app.services.question_sampler import QuestionSampler, present_options, question_sampler
from app.services.scoring import build_result

logger = logging.getLogger(__name__)


def parse_language(language: str) -> str:
    try:
        return LanguageEnum(str(language).strip().lower()).value
    except ValueError:
        raise InvalidLanguage()


def parse_answer_letter(letter) -> str:
    if not isinstance(letter, str) or letter.strip().lower() not in ANSWER_LETTERS:
        raise InvalidAnswer()
    return letter.strip().lower()


class ExamSessionService:

    def __init__(self, entitlement: Optional[EntitlementService] = None,
                 sampler: Optional[QuestionSampler] = None, clock: Callable = utcnow):
        self.entitlement = entitlement or entitlement_service
        self.sampler = sampler or question_sampler
        self.clock = clock

    def _require_attempt(self, db: Session, context: UserContext, attempt_id: int,
                         status: Optional[ExamAttemptStatusEnum] = None, message: Optional[str] = None) -> ExamAttempt:
        attempt = crud_exam_attempt.get_owned(db, attempt_id, context.user.id, status=status)
        if not attempt:
            raise ExamNotFound(message)
        return attempt

    def _to_session(self, attempt: ExamAttempt, answers: List[ExamAnswer]) -> ExamSession:
        questions = [
            PresentedQuestion(
                question_id=answer.question_id,
                question_number=answer.question_number,
                text=answer.question.text,
                image_url=answer.question.image_url,
                is_picture=answer.question.is_picture,
                options=present_options(answer.question.options, answer.option_order),
                user_answer=answer.user_answer,
            )
            for answer in answers
        ]
        return ExamSession(
            exam_attempt_id=attempt.id,
            language=attempt.language,
            status=attempt.status,
            start_time=attempt.start_time,
            deadline=attempt.deadline,
            time_limit_minutes=attempt.time_limit_minutes,
            total_questions=attempt.total_questions,
            picture_questions_count=attempt.picture_questions_count,
            passing_score=attempt.passing_score,
            questions=questions,
        )

    def start(self, db: Session, context: UserContext, language: str) -> ExamSession:
        language = parse_language(language)
        user = context.user

        decision = self.entitlement.check_can_start_exam(db, user)
        open_attempt = crud_exam_attempt.get_in_progress(db, user.id)
        if open_attempt:
            raise IncompleteExamExists(exam_attempt_id=open_attempt.id)

        exclude_ids = self.sampler.exclusion_set(db, user.id, settings.EXAM_RECENT_ATTEMPTS_WINDOW)
        sample = self.sampler.sample(
            db, language,
            total_count=settings.EXAM_TOTAL_QUESTIONS,
            picture_min=settings.EXAM_PICTURE_QUESTIONS_MIN,
            exclude_ids=exclude_ids,
        )

        attempt = crud_exam_attempt.create(db, obj_in={
            "user_id": user.id,
            "language": language,
            "start_time": self.clock(),
            "time_limit_minutes": settings.EXAM_TIME_LIMIT_MINUTES,
            "status": ExamAttemptStatusEnum.IN_PROGRESS.value,
            "total_questions": len(sample.questions),
            "picture_questions_count": sample.picture_count,
            "passing_score": settings.EXAM_PASSING_SCORE,
        }, commit=False)

        answers = crud_exam_answer.create_bulk(db, [
            ExamAnswer(
                exam_attempt_id=attempt.id,
                question_id=item.question.id,
                question_number=number,
                option_order=item.option_order,
                correct_answer=item.correct_letter,
            )
            for number, item in enumerate(sample.questions, start=1)
        ])
        crud_question.increment_usage(db, [item.question.id for item in sample.questions])

        if not decision.bypassed:
            self.entitlement.consume_attempt(db, decision.subscription)

        db.commit()
        db.refresh(attempt)
        logger.info(
            f"Exam {attempt.id} started for user {user.id} ({language}, "
            f"{sample.picture_count} picture questions, {len(sample.reused_ids)} recently seen)"
        )
        return self._to_session(attempt, crud_exam_answer.get_all_by_attempt(db, attempt.id))

    def get_attempt(self, db: Session, context: UserContext, attempt_id: int) -> ExamSession:
        attempt = self._require_attempt(db, context, attempt_id)
        return self._to_session(attempt, attempt.exam_answers)

    def _complete(self, db: Session, attempt: ExamAttempt, auto_submitted: bool) -> ExamResult:
        now = self.clock()
        if not crud_exam_attempt.complete_if_in_progress(db, attempt.id, attempt.user_id, now):
            raise ExamNotFound()
        db.commit()
        db.refresh(attempt)
        result = build_result(attempt, crud_exam_answer.get_all_by_attempt(db, attempt.id), auto_submitted)
        logger.info(
            f"Exam {attempt.id} {'auto-submitted' if auto_submitted else 'submitted'}: "
            f"score {result.score}/{result.total_questions}, passed={result.passed}"
        )
        return result

    def submit_answer(self, db: Session, context: UserContext, attempt_id: int,
                      question_id: int, letter: str) -> AnswerSubmitResponse:
        letter = parse_answer_letter(letter)
        attempt = self._require_attempt(db, context, attempt_id, status=ExamAttemptStatusEnum.IN_PROGRESS)

        now = self.clock()
        if attempt.has_expired(now):
            # A late answer grades the whole attempt instead of being recorded.
            result = self._complete(db, attempt, auto_submitted=True)
            return AnswerSubmitResponse(question_id=question_id, answered=False, auto_submitted=True, result=result)

        answer = crud_exam_answer.get_by_attempt_and_question(db, attempt.id, question_id)
        if not answer:
            raise QuestionNotInAttempt()

        recorded = crud_exam_answer.record_if_in_progress(
            db, answer.id, attempt.id, letter,
            is_correct=letter == answer.correct_answer,
            answered_at=now,
            time_to_answer=int((now - attempt.start_time).total_seconds()),
        )
        if not recorded:
            raise ExamNotFound()
        db.commit()
        return AnswerSubmitResponse(question_id=question_id, answered=True)

    def submit(self, db: Session, context: UserContext, attempt_id: int) -> ExamResult:
        attempt = self._require_attempt(db, context, attempt_id, status=ExamAttemptStatusEnum.IN_PROGRESS)
        return self._complete(db, attempt, auto_submitted=attempt.has_expired(self.clock()))

    def review(self, db: Session, context: UserContext, attempt_id: int) -> ExamReview:
        attempt = self._require_attempt(
            db, context, attempt_id, status=ExamAttemptStatusEnum.COMPLETED,
            message="Completed exam not found."
        )
        questions = [
            ReviewQuestion(
                question_number=answer.question_number,
                question_id=answer.question_id,
                text=answer.question.text,
                image_url=answer.question.image_url,
                options=present_options(answer.question.options, answer.option_order),
                user_answer=answer.user_answer,
                correct_answer=answer.correct_answer,
                is_correct=bool(answer.is_correct),
                explanation=answer.question.explanation,
            )
            for answer in attempt.exam_answers
        ]
        return ExamReview(
            exam_attempt_id=attempt.id,
            score=attempt.score,
            total_questions=attempt.total_questions,
            passing_score=attempt.passing_score,
            passed=bool(attempt.passed),
            percentage=attempt.percentage or 0.0,
            questions=questions,
        )

    def get_history(self, db: Session, context: UserContext, page: int = 1, size: int = 10) -> dict:
        result = crud_exam_attempt.get_completed_page(db, context.user.id, page=page, size=size)
        result["items"] = [ExamAttemptSchema.model_validate(item) for item in result["items"]]
        return result

    def get_stats(self, db: Session, context: UserContext) -> ExamStats:
        stats = crud_exam_attempt.get_user_stats(db, context.user.id)
        total = stats["total_exams"]
        passed = stats["passed_exams"]
        return ExamStats(
            total_exams=total,
            passed_exams=passed,
            failed_exams=total - passed,
            pass_rate=round(passed / total * 100, 2) if total else 0.0,
            average_score=stats["average_score"],
            highest_score=stats["highest_score"],
            lowest_score=stats["lowest_score"],
            passing_score=settings.EXAM_PASSING_SCORE,
            total_questions=settings.EXAM_TOTAL_QUESTIONS,
        )


exam_session_service = ExamSessionService()
