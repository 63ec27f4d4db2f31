from fastapi import APIRouter, Depends, status, Query
from sqlalchemy.orm import Session

from app.crud.base import PaginatedResponse
from app.schemas.response import APIResponse
from app.schemas.exam_attempt import (
    AnswerSubmitRequest, AnswerSubmitResponse, ExamAttempt, ExamResult, ExamReview, ExamSession,
    ExamStartRequest, ExamStats
)
from app.schemas.user import UserContext
from app.services.exam_session import exam_session_service
from app.services.scoring import result_message
from app.utils import deps

router = APIRouter()


@router.post("/start", response_model=APIResponse[ExamSession], status_code=status.HTTP_201_CREATED)
def start_exam(
    *,
    db: Session = Depends(deps.get_transactional_db),
    exam_in: ExamStartRequest,
    context: UserContext = Depends(deps.get_current_user_with_context)
):
    session = exam_session_service.start(db, context, language=exam_in.language)
    return APIResponse(message="Exam started successfully", data=session)


@router.get("/history", response_model=APIResponse[PaginatedResponse[ExamAttempt]])
def get_exam_history(
    db: Session = Depends(deps.get_db),
    context: UserContext = Depends(deps.get_current_user_with_context),
    page: int = Query(1, ge=1),
    size: int = Query(10, ge=1, le=100)
):
    history = exam_session_service.get_history(db, context, page=page, size=size)
    return APIResponse(message="Exam history retrieved successfully", data=history)


@router.get("/stats", response_model=APIResponse[ExamStats])
def get_exam_stats(
    db: Session = Depends(deps.get_db),
    context: UserContext = Depends(deps.get_current_user_with_context)
):
    stats = exam_session_service.get_stats(db, context)
    return APIResponse(message="Exam statistics retrieved successfully", data=stats)


@router.get("/{exam_attempt_id}", response_model=APIResponse[ExamSession])
def get_exam(
    exam_attempt_id: int,
    db: Session = Depends(deps.get_db),
    context: UserContext = Depends(deps.get_current_user_with_context)
):
    session = exam_session_service.get_attempt(db, context, exam_attempt_id)
    return APIResponse(message="Exam retrieved successfully", data=session)


@router.post("/{exam_attempt_id}/answer", response_model=APIResponse[AnswerSubmitResponse])
def submit_answer(
    *,
    exam_attempt_id: int,
    answer_in: AnswerSubmitRequest,
    db: Session = Depends(deps.get_transactional_db),
    context: UserContext = Depends(deps.get_current_user_with_context)
):
    response = exam_session_service.submit_answer(
        db, context, exam_attempt_id, question_id=answer_in.question_id, letter=answer_in.answer
    )
    if response.auto_submitted:
        return APIResponse(message=f"Time limit exceeded, exam submitted. {result_message(response.result)}", data=response)
    return APIResponse(message="Answer submitted successfully", data=response)


@router.post("/{exam_attempt_id}/submit", response_model=APIResponse[ExamResult])
def submit_exam(
    exam_attempt_id: int,
    db: Session = Depends(deps.get_transactional_db),
    context: UserContext = Depends(deps.get_current_user_with_context)
):
    result = exam_session_service.submit(db, context, exam_attempt_id)
    return APIResponse(message=result_message(result), data=result)


@router.get("/{exam_attempt_id}/review", response_model=APIResponse[ExamReview])
def review_exam(
    exam_attempt_id: int,
    db: Session = Depends(deps.get_db),
    context: UserContext = Depends(deps.get_current_user_with_context)
):
    review = exam_session_service.review(db, context, exam_attempt_id)
    return APIResponse(message="Exam review retrieved successfully", data=review)
