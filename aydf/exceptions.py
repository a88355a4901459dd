from fastapi import status


class AppError(Exception):
    """Base for errors rendered as ``{"success": false, "message": ...}``."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    message = "Internal Server Error"

    def __init__(self, message=None):
        if message:
            self.message = message
        super().__init__(self.message)


class GatewayConfigError(AppError):
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    message = "Razorpay is not configured. Please add RAZORPAY_KEY_ID and RAZORPAY_KEY_SECRET"


class GatewayRequestError(AppError):
    status_code = status.HTTP_502_BAD_GATEWAY
    message = "Payment gateway request failed"


class InvalidSignature(AppError):
    status_code = status.HTTP_400_BAD_REQUEST
    message = "Invalid payment signature"


class RecordNotFound(AppError):
    status_code = status.HTTP_404_NOT_FOUND
    message = "Record not found"


class PaymentStateConflict(AppError):
    status_code = status.HTTP_409_CONFLICT
    message = "Payment can no longer be completed"
