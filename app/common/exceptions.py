"""
Errores de negocio del ERP

Cada error tiene un código estable (``code``) y un status HTTP propio para
que el cliente pueda distinguirlos sin interpretar el mensaje.
"""
import logging
from typing import Any, Dict, Optional

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class ERPError(Exception):
    """Base de todos los errores de negocio"""

    code = "erp_error"
    status_code = 400

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        return {
            "error": {
                "code": self.code,
                "message": self.message,
                "details": self.details,
            }
        }


class ValidationError(ERPError):
    """Datos de entrada mal formados"""
    code = "validation_error"
    status_code = 422


class NegativeAmountError(ValidationError):
    """Monto cero o negativo donde se requiere uno positivo"""
    code = "negative_amount"


class NotFoundError(ERPError):
    code = "not_found"
    status_code = 404


class ForbiddenError(ERPError):
    """Acceso a recursos de otra empresa"""
    code = "forbidden"
    status_code = 403


class InvalidTransitionError(ERPError):
    """Cambio de estado no permitido"""
    code = "invalid_transition"
    status_code = 409

    def __init__(self, entity: str, from_state: str, to_state: str, message: Optional[str] = None):
        self.entity = entity
        self.from_state = from_state
        self.to_state = to_state
        super().__init__(
            message or f"Transición inválida para {entity}: '{from_state}' -> '{to_state}'",
            {"entity": entity, "from_state": from_state, "to_state": to_state},
        )


class DuplicateLineError(ERPError):
    code = "duplicate_line"
    status_code = 409


class OverAllocationError(ERPError):
    """Cantidad acumulada estimada mayor a la presupuestada"""
    code = "over_allocation"
    status_code = 409


class OverReceiptError(ERPError):
    """Cantidad recibida mayor a la ordenada"""
    code = "over_receipt"
    status_code = 409


class OverpaymentError(ERPError):
    """Pago mayor al saldo pendiente"""
    code = "overpayment"
    status_code = 409


class InsufficientFundsError(ERPError):
    code = "insufficient_funds"
    status_code = 409


class InsufficientStockError(ERPError):
    code = "insufficient_stock"
    status_code = 409


class UnbalancedEntryError(ERPError):
    """Póliza cuyo debe no cuadra con el haber"""
    code = "unbalanced_entry"
    status_code = 409


async def erp_error_handler(request: Request, exc: ERPError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error(f"{exc.code} on {request.url.path}: {exc.message}")
    else:
        logger.info(f"{exc.code} on {request.url.path}: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    error = ValidationError("Datos de entrada inválidos", {"errors": jsonable_encoder(exc.errors())})
    return JSONResponse(status_code=error.status_code, content=error.to_dict())


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(ERPError, erp_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
