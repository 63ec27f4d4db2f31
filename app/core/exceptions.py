from typing import Any, Dict, Optional
from fastapi import HTTPException, status


class AppError(HTTPException):
    """HTTPException with a stable machine code and structured details.

    Subclasses set ``status_code``, ``code`` and a default ``message``; keyword
    arguments passed at raise time end up in ``details`` so clients can render
    corrective actions (limits, counts, shortfalls).
    """
    status_code: int = status.HTTP_400_BAD_REQUEST
    code: str = "BAD_REQUEST"
    message: str = "Request could not be processed."

    def __init__(self, message: Optional[str] = None, status_code: Optional[int] = None, **details: Any):
        self.message = message or self.message
        self.details: Dict[str, Any] = details
        super().__init__(status_code=status_code or self.status_code, detail=self.message)


# Validation errors

class InvalidLanguage(AppError):
    code = "INVALID_LANGUAGE"
    message = "Invalid language. Must be one of: en, fr, rw."

class InvalidAnswer(AppError):
    code = "INVALID_ANSWER"
    message = "Invalid answer. Must be a, b, c, or d."

class InvalidPhoneNumber(AppError):
    code = "INVALID_PHONE_NUMBER"
    message = "Invalid phone number format. Must be 10 digits starting with 07."

class InvalidAmount(AppError):
    code = "INVALID_AMOUNT"
    message = "Payment amount is out of the accepted range."


# Entitlement errors

class NoSubscription(AppError):
    status_code = status.HTTP_403_FORBIDDEN
    code = "NO_SUBSCRIPTION"
    message = "Active subscription required to start exam."

class SubscriptionExpired(AppError):
    status_code = status.HTTP_403_FORBIDDEN
    code = "SUBSCRIPTION_EXPIRED"
    message = "Your subscription has expired. Please renew your plan."

class AttemptsExhausted(AppError):
    status_code = status.HTTP_403_FORBIDDEN
    code = "ATTEMPTS_EXHAUSTED"
    message = "No exam attempts remaining. Please purchase more exams."

class IncompleteExamExists(AppError):
    code = "INCOMPLETE_EXAM"
    message = "You have an incomplete exam. Please complete it first."


# Resource insufficiency

class InsufficientQuestions(AppError):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    code = "INSUFFICIENT_QUESTIONS"
    message = "Not enough active questions in the question bank."

class InsufficientPictureQuestions(InsufficientQuestions):
    code = "INSUFFICIENT_PICTURE_QUESTIONS"
    message = "Not enough picture questions in the question bank."

class InsufficientTextQuestions(InsufficientQuestions):
    code = "INSUFFICIENT_TEXT_QUESTIONS"
    message = "Not enough text-only questions in the question bank."


# Exam session

class ExamNotFound(AppError):
    status_code = status.HTTP_404_NOT_FOUND
    code = "EXAM_NOT_FOUND"
    message = "Exam not found or already completed."

class QuestionNotInAttempt(AppError):
    status_code = status.HTTP_404_NOT_FOUND
    code = "QUESTION_NOT_IN_ATTEMPT"
    message = "Question not found in this exam."


# Catalog

class PlanNotFound(AppError):
    status_code = status.HTTP_404_NOT_FOUND
    code = "PLAN_NOT_FOUND"
    message = "Subscription plan not found."

class ProductNotFound(AppError):
    status_code = status.HTTP_404_NOT_FOUND
    code = "PRODUCT_NOT_FOUND"
    message = "Product not found."

class AlreadyPurchased(AppError):
    status_code = status.HTTP_409_CONFLICT
    code = "ALREADY_PURCHASED"
    message = "You have already purchased this product."


# Payments

class PaymentNotFound(AppError):
    status_code = status.HTTP_404_NOT_FOUND
    code = "PAYMENT_NOT_FOUND"
    message = "Payment not found."

class PaymentAccessDenied(AppError):
    status_code = status.HTTP_403_FORBIDDEN
    code = "UNAUTHORIZED"
    message = "Unauthorized access to this payment."

class PaymentNotPending(AppError):
    code = "PAYMENT_NOT_PENDING"
    message = "Payment is no longer pending."

class AlreadyCompleted(PaymentNotPending):
    code = "ALREADY_COMPLETED"
    message = "Payment already completed."

class DuplicatePendingPayment(AppError):
    code = "DUPLICATE_PENDING_PAYMENT"
    message = "You already have a pending payment for this item."

class GatewayMethodUnconfigured(AppError):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    code = "GATEWAY_METHOD_UNCONFIGURED"
    message = "Payment method is not configured. Please contact support."

class GatewayError(AppError):
    code = "GATEWAY_ERROR"
    message = "Payment failed."

class MissingMetadata(AppError):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    code = "MISSING_METADATA"
    message = "Payment metadata is missing the subscription plan."

class InvalidWebhookSignature(AppError):
    status_code = status.HTTP_401_UNAUTHORIZED
    code = "INVALID_WEBHOOK_SIGNATURE"
    message = "Invalid webhook signature."

class ManualVerifyDisabled(AppError):
    status_code = status.HTTP_403_FORBIDDEN
    code = "MANUAL_VERIFY_DISABLED"
    message = "Manual payment verification is disabled."

class InvalidPaymentMethod(AppError):
    code = "INVALID_PAYMENT_METHOD"
    message = "Invalid payment method. Must be one of: mtn_momo, airtel_money, spenn."
