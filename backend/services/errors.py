"""
Erros de domínio da distribuição.
Cada erro carrega o status HTTP; server.py converte em JSON.
"""

from typing import Any, Dict, Optional


class DistributionError(Exception):
    """Base de todos os erros de distribuição/repescagem"""
    status_code = 400
    error = "distribution_error"

    def __init__(self, message: str, issues: Optional[Dict[str, Any]] = None,
                 status_code: Optional[int] = None, **extra):
        super().__init__(message)
        self.message = message
        self.issues = issues
        self.extra = extra
        if status_code is not None:
            self.status_code = status_code

    def to_dict(self) -> Dict[str, Any]:
        body = {"error": self.error, "message": self.message}
        if self.issues:
            body["issues"] = self.issues
        body.update(self.extra)
        return body


class InvalidRequestError(DistributionError):
    """Payload malformado (lista de consultores vazia, quantidade <= 0...)"""
    status_code = 422
    error = "validation_error"


class UnauthorizedError(DistributionError):
    """Ator sem papel para a operação (ex.: CONSULTOR)"""
    status_code = 401
    error = "unauthorized"


class ForbiddenError(DistributionError):
    """Ator sem escopo hierárquico sobre os consultores/escritórios"""
    status_code = 403
    error = "forbidden"


class NotFoundError(DistributionError):
    status_code = 404
    error = "not_found"


class NoEligibleLeadsError(DistributionError):
    """Pool filtrado vazio - o chamador pode relaxar os filtros"""
    status_code = 409
    error = "no_eligible_leads"


class PersistenceError(DistributionError):
    """Falha inesperada de escrita (lead ou log)"""
    status_code = 500
    error = "persistence_error"


class ConflictError(DistributionError):
    """Lead alterado por outra operação entre a leitura e a gravação"""
    status_code = 409
    error = "conflict"
