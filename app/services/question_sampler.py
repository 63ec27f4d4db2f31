import logging
import random
from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Sequence, Set, Tuple, Type
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.constants import ANSWER_LETTERS
from app.core.exceptions import (
    InsufficientPictureQuestions, InsufficientQuestions, InsufficientTextQuestions
)
from app.crud.exam_answer import exam_answer as crud_exam_answer
from app.crud.exam_attempt import exam_attempt as crud_exam_attempt
from app.crud.question import question as crud_question
from app.models.question import Question
from app.schemas.question import PresentedOption

logger = logging.getLogger(__name__)


def shuffle_options(options: Sequence[dict], rng: random.Random) -> Tuple[List[int], str]:
    """Shuffle the four options of one question for one presentation.

    Returns the original option indices in displayed order and the letter
    under which the correct option is displayed.
    """
    order = list(range(len(options)))
    rng.shuffle(order)
    correct_index = next(i for i, opt in enumerate(options) if opt.get("is_correct"))
    return order, ANSWER_LETTERS[order.index(correct_index)]


def present_options(options: Sequence[dict], option_order: Sequence[int]) -> List[PresentedOption]:
    return [
        PresentedOption(
            letter=ANSWER_LETTERS[position],
            text=options[index].get("text"),
            image_url=options[index].get("image_url"),
        )
        for position, index in enumerate(option_order)
    ]


@dataclass
class SampledQuestion:
    question: Question
    option_order: List[int]
    correct_letter: str


@dataclass
class SampleResult:
    questions: List[SampledQuestion]
    picture_count: int
    reused_ids: Set[int] = field(default_factory=set)


class QuestionSampler:
    """Draws an exam's question set from the active bank of one language."""

    def __init__(self, repository=crud_question, rng: Optional[random.Random] = None,
                 oversample: Optional[int] = None):
        self.repository = repository
        self.rng = rng or random.SystemRandom()
        self.oversample = oversample or settings.EXAM_POOL_OVERSAMPLE

    def exclusion_set(self, db: Session, user_id: int, window: int) -> Set[int]:
        """Question ids the user saw in their last ``window`` completed attempts."""
        attempt_ids = crud_exam_attempt.get_recent_completed_ids(db, user_id=user_id, limit=window)
        return crud_exam_answer.get_question_ids_for_attempts(db, attempt_ids)

    def _draw(self, db: Session, language: str, is_picture: bool, needed: int, exclude_ids: Set[int],
              picked_ids: Set[int], error_cls: Type[InsufficientQuestions]) -> List[Question]:
        if needed <= 0:
            return []

        pool = self.repository.sample_random(
            db, language, needed * self.oversample, is_picture=is_picture,
            exclude_ids=exclude_ids | picked_ids
        )
        chosen = self.rng.sample(pool, min(needed, len(pool)))

        if len(chosen) < needed:
            # Not enough unseen questions: fall back to the full bank, minus what is already picked.
            shortfall = needed - len(chosen)
            taken = picked_ids | {q.id for q in chosen}
            top_up = self.repository.sample_random(
                db, language, shortfall * 2, is_picture=is_picture, exclude_ids=taken
            )
            chosen.extend(self.rng.sample(top_up, min(shortfall, len(top_up))))
            logger.info(
                f"Topped up {language} {'picture' if is_picture else 'text'} questions "
                f"from recently seen ones: wanted {shortfall}, got {min(shortfall, len(top_up))}"
            )

        if len(chosen) < needed:
            raise error_cls(
                required=needed, available=len(chosen), shortfall=needed - len(chosen), language=language
            )
        return chosen

    def sample(self, db: Session, language: str, total_count: int, picture_min: int,
               exclude_ids: Iterable[int] = ()) -> SampleResult:
        exclude_ids = set(exclude_ids)

        available = self.repository.count_active(db, language)
        if available < total_count:
            raise InsufficientQuestions(required=total_count, available=available, language=language)

        pictures_available = self.repository.count_active(db, language, is_picture=True)
        if pictures_available < picture_min:
            raise InsufficientPictureQuestions(
                required=picture_min, available=pictures_available, language=language
            )

        pictures = self._draw(
            db, language, True, picture_min, exclude_ids, set(), InsufficientPictureQuestions
        )
        picked_ids = {q.id for q in pictures}
        texts = self._draw(
            db, language, False, total_count - picture_min, exclude_ids, picked_ids,
            InsufficientTextQuestions
        )

        selected = pictures + texts
        self.rng.shuffle(selected)

        sampled = []
        for q in selected:
            option_order, correct_letter = shuffle_options(q.options, self.rng)
            sampled.append(SampledQuestion(question=q, option_order=option_order, correct_letter=correct_letter))

        return SampleResult(
            questions=sampled,
            picture_count=len(pictures),
            reused_ids={q.id for q in selected} & exclude_ids,
        )


question_sampler = QuestionSampler()
