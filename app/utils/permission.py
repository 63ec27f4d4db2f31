from app.core.exceptions import PaymentAccessDenied
from app.models.payment import Payment
from app.schemas.user import UserContext


class PermissionHelper:

    @staticmethod
    def is_admin(context: UserContext) -> bool:
        return bool(context and context.is_admin)

    @staticmethod
    def require_payment_owner(context: UserContext, payment: Payment):
        if payment.user_id != context.user.id:
            raise PaymentAccessDenied()

    @staticmethod
    def require_payment_owner_or_admin(context: UserContext, payment: Payment):
        if PermissionHelper.is_admin(context):
            return
        PermissionHelper.require_payment_owner(context, payment)
