"""
Domain errors and their HTTP rendering.

Every message that can reach a user lives in ``MESSAGES`` so the wording
stays consistent across endpoints.
"""
import logging

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError

logger = logging.getLogger(__name__)

MESSAGES = {
    "invalid_credentials": "Email ou senha incorretos.",
    "already_registered": "Este email já está cadastrado.",
    "inactive_user": "Esta conta está desativada.",
    "rate_limited": "Muitas tentativas. Por favor, aguarde alguns minutos antes de tentar novamente.",
    "not_authenticated": "Sessão inválida ou expirada. Faça login novamente.",
    "permission_denied": "Você não tem permissão para realizar esta ação.",
    "reset_sent": "Se existir uma conta com este email, enviaremos um link de redefinição de senha.",
    "invalid_reset_token": "Link de redefinição inválido ou expirado.",
    "wrong_current_password": "Senha atual incorreta.",
    "duplicate_plate": "Já existe um veículo cadastrado com esta placa",
    "duplicate_record": "Registro duplicado.",
    "invalid_year": "Ano inválido",
    "vehicle_not_found": "Veículo não encontrado",
    "request_not_found": "Solicitação não encontrada",
    "provider_not_found": "Prestador não encontrado",
    "quote_not_found": "Cotação não encontrada",
    "payment_not_found": "Pagamento não encontrado",
    "invalid_transition": "Não é possível alterar o status desta solicitação.",
    "already_taken": "Esta solicitação já foi atualizada por outro usuário.",
    "missing_price": "Informe o valor estimado do serviço.",
    "missing_payment_account": "O prestador não possui conta de pagamento cadastrada.",
    "payment_failed": "Erro ao processar pagamento",
    "payment_mismatch": "Os dados do pagamento não conferem com a solicitação.",
    "payment_closed": "O pagamento desta solicitação foi cancelado ou estornado.",
    "not_payable": "Esta solicitação não está aguardando pagamento.",
    "quote_already_settled": "Esta cotação já foi respondida.",
    "proposal_not_found": "Proposta não encontrada",
    "proposal_closed": "Esta proposta não está mais disponível.",
    "notification_not_found": "Notificação não encontrada",
    "required_fields": "Por favor, preencha todos os campos.",
}


class AppError(Exception):
    """Base class for errors that map to an HTTP response."""

    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str, status_code: int = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class AuthError(AppError):
    status_code = status.HTTP_401_UNAUTHORIZED


class PermissionDenied(AppError):
    status_code = status.HTTP_403_FORBIDDEN

    def __init__(self, message: str = MESSAGES["permission_denied"]):
        super().__init__(message)


class NotFound(AppError):
    status_code = status.HTTP_404_NOT_FOUND


class Conflict(AppError):
    status_code = status.HTTP_409_CONFLICT


class InvalidTransition(Conflict):
    def __init__(self, current, action: str):
        super().__init__(MESSAGES["invalid_transition"])
        self.current = current
        self.action = action


class ValidationFailed(AppError):
    status_code = status.HTTP_400_BAD_REQUEST


class RateLimited(AppError):
    status_code = status.HTTP_429_TOO_MANY_REQUESTS

    def __init__(self, message: str = MESSAGES["rate_limited"]):
        super().__init__(message)


class PaymentError(AppError):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str = MESSAGES["payment_failed"], cause: str = None):
        super().__init__(message)
        self.cause = cause


def integrity_message(exc: IntegrityError) -> str:
    """Pick the localized message for a constraint violation."""
    text = str(exc.orig).lower()
    if "plate" in text:
        return MESSAGES["duplicate_plate"]
    if "email" in text:
        return MESSAGES["already_registered"]
    return MESSAGES["duplicate_record"]


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(AppError)
    async def app_error_handler(request: Request, exc: AppError):
        if exc.status_code >= 500:
            logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
        return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})

    @app.exception_handler(IntegrityError)
    async def integrity_error_handler(request: Request, exc: IntegrityError):
        logger.warning("Integrity error on %s: %s", request.url.path, exc.orig)
        return JSONResponse(
            status_code=status.HTTP_409_CONFLICT,
            content={"detail": integrity_message(exc)},
        )
