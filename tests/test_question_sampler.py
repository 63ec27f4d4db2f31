import random
import pytest
from collections import Counter
from sqlalchemy.orm import Session

from app.core.exceptions import InsufficientPictureQuestions, InsufficientQuestions, InsufficientTextQuestions
from app.services.question_sampler import QuestionSampler, present_options, shuffle_options
from tests.helpers.factories import make_options


@pytest.fixture
def sampler():
    return QuestionSampler(rng=random.Random(1234))


def test_sample_uses_whole_bank_when_it_is_exactly_large_enough(db_session: Session, seed_bank, sampler):
    bank = seed_bank(language="rw", pictures=4, texts=16)

    result = sampler.sample(db_session, "rw", total_count=20, picture_min=4, exclude_ids=set())

    ids = [item.question.id for item in result.questions]
    assert len(ids) == 20
    assert len(set(ids)) == 20
    assert set(ids) == {q.id for q in bank}
    assert sum(1 for item in result.questions if item.question.is_picture) == 4
    assert result.picture_count == 4
    assert result.reused_ids == set()


def test_sample_fails_when_picture_questions_are_missing(db_session: Session, seed_bank, sampler):
    seed_bank(language="en", pictures=3, texts=20)

    with pytest.raises(InsufficientPictureQuestions) as exc_info:
        sampler.sample(db_session, "en", total_count=20, picture_min=4)

    assert exc_info.value.details["available"] == 3
    assert exc_info.value.details["required"] == 4
    assert exc_info.value.status_code == 500


def test_sample_fails_when_bank_is_too_small(db_session: Session, seed_bank, sampler):
    seed_bank(language="fr", pictures=4, texts=6)

    with pytest.raises(InsufficientQuestions) as exc_info:
        sampler.sample(db_session, "fr", total_count=20, picture_min=4)

    assert exc_info.value.code == "INSUFFICIENT_QUESTIONS"
    assert exc_info.value.details == {"required": 20, "available": 10, "language": "fr"}


def test_sample_fails_when_text_questions_are_missing(db_session: Session, seed_bank, sampler):
    seed_bank(language="en", pictures=10, texts=5)

    with pytest.raises(InsufficientTextQuestions) as exc_info:
        sampler.sample(db_session, "en", total_count=12, picture_min=4)

    assert exc_info.value.details["required"] == 8
    assert exc_info.value.details["available"] == 5
    assert exc_info.value.details["shortfall"] == 3


def test_sample_avoids_excluded_questions_when_enough_fresh_ones_exist(db_session: Session, seed_bank, sampler):
    bank = seed_bank(language="en", pictures=8, texts=32)
    pictures = [q for q in bank if q.is_picture]
    texts = [q for q in bank if not q.is_picture]
    excluded = {q.id for q in pictures[:4]} | {q.id for q in texts[:16]}

    result = sampler.sample(db_session, "en", total_count=20, picture_min=4, exclude_ids=excluded)

    ids = {item.question.id for item in result.questions}
    assert len(ids) == 20
    assert ids.isdisjoint(excluded)
    assert result.reused_ids == set()


def test_sample_tops_up_from_excluded_questions_when_needed(db_session: Session, seed_bank, sampler):
    bank = seed_bank(language="en", pictures=4, texts=16)
    excluded = {q.id for q in bank}

    result = sampler.sample(db_session, "en", total_count=20, picture_min=4, exclude_ids=excluded)

    assert len({item.question.id for item in result.questions}) == 20
    assert result.picture_count == 4
    assert result.reused_ids == excluded


def test_sample_ignores_inactive_and_other_language_questions(db_session: Session, seed_bank, question_factory, sampler):
    bank = seed_bank(language="en", pictures=4, texts=16)
    inactive = question_factory(language="en", picture=True, is_active=False)
    other = question_factory(language="fr", picture=False)

    result = sampler.sample(db_session, "en", total_count=20, picture_min=4)

    ids = {item.question.id for item in result.questions}
    assert ids == {q.id for q in bank}
    assert inactive.id not in ids
    assert other.id not in ids


def test_sample_records_a_correct_letter_for_every_question(db_session: Session, seed_bank, sampler):
    seed_bank(language="en", pictures=4, texts=16)

    result = sampler.sample(db_session, "en", total_count=20, picture_min=4)

    for item in result.questions:
        assert sorted(item.option_order) == [0, 1, 2, 3]
        shown = present_options(item.question.options, item.option_order)
        correct_index = item.option_order["abcd".index(item.correct_letter)]
        assert item.question.options[correct_index]["is_correct"] is True
        assert [opt.letter for opt in shown] == ["a", "b", "c", "d"]


def test_shuffle_options_tracks_the_correct_option():
    options = make_options(correct=2)
    order, letter = shuffle_options(options, random.Random(7))

    assert sorted(order) == [0, 1, 2, 3]
    assert order["abcd".index(letter)] == 2


def test_shuffle_options_moves_the_correct_letter_around():
    options = make_options(correct=0)
    rng = random.Random(42)

    letters = Counter(shuffle_options(options, rng)[1] for _ in range(400))

    assert set(letters) == {"a", "b", "c", "d"}
    assert all(count > 50 for count in letters.values())


def test_present_options_follows_presentation_order():
    options = make_options(correct=1)

    shown = present_options(options, [3, 1, 0, 2])

    assert [opt.text for opt in shown] == ["Option 4", "Option 2", "Option 1", "Option 3"]
    assert [opt.letter for opt in shown] == ["a", "b", "c", "d"]
