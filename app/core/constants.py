from enum import Enum


ANSWER_LETTERS = ("a", "b", "c", "d")
OPTIONS_PER_QUESTION = len(ANSWER_LETTERS)

class RoleEnum(str, Enum):
    USER = "user"
    ADMIN = "admin"

class LanguageEnum(str, Enum):
    KINYARWANDA = "rw"
    ENGLISH = "en"
    FRENCH = "fr"

LANGUAGE_DISPLAY_NAMES = {
    LanguageEnum.KINYARWANDA: "Kinyarwanda",
    LanguageEnum.ENGLISH: "English",
    LanguageEnum.FRENCH: "French",
}

class ExamAttemptStatusEnum(str, Enum):
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    ABANDONED = "abandoned"

class PaymentStatusEnum(str, Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"

class PaymentTypeEnum(str, Enum):
    SUBSCRIPTION = "subscription"
    PRODUCT = "product"

class PaymentMethodEnum(str, Enum):
    MTN_MOMO = "mtn_momo"
    AIRTEL_MONEY = "airtel_money"
    SPENN = "spenn"

PAYMENT_METHOD_DISPLAY_NAMES = {
    PaymentMethodEnum.MTN_MOMO: "MTN Mobile Money",
    PaymentMethodEnum.AIRTEL_MONEY: "Airtel Money",
    PaymentMethodEnum.SPENN: "SPENN",
}

class ProductTypeEnum(str, Enum):
    THEORY = "theory"
    ROAD_SIGNS = "road_signs"
    PRACTICE_TESTS = "practice_tests"
    GENERAL = "general"
