from __future__ import annotations
"""Domain error taxonomy shared by the services and the HTTP layer.

Services raise these; ``create_app`` registers a handler that renders them in the
same ``{'error': {...}}`` envelope used for werkzeug HTTP errors.
"""
from typing import Any, Dict, Optional


class WorkflowError(Exception):
    status = 400
    title = 'Bad Request'
    code = 'error'

    def __init__(self, detail: str = '', **context: Any):
        super().__init__(detail or self.title)
        self.detail = detail or self.title
        self.context = context

    def to_dict(self) -> Dict[str, Any]:
        body: Dict[str, Any] = {
            'status': self.status,
            'title': self.title,
            'detail': self.detail,
            'code': self.code,
        }
        if self.context:
            body['context'] = self.context
        return body


class NotFoundError(WorkflowError):
    status = 404
    title = 'Not Found'
    code = 'not_found'


class AuthenticationError(WorkflowError):
    status = 401
    title = 'Unauthorized'
    code = 'invalid_credentials'


class ForbiddenError(WorkflowError):
    status = 403
    title = 'Forbidden'
    code = 'forbidden'


class InvalidStateError(WorkflowError):
    """Action is not defined for the entity's current status."""
    status = 409
    title = 'Invalid State'
    code = 'invalid_state'


class ValidationError(WorkflowError):
    status = 400
    title = 'Validation Error'
    code = 'validation_error'


class ConflictError(WorkflowError):
    """Another writer changed the entity since it was read."""
    status = 409
    title = 'Conflict'
    code = 'conflict'


def error_payload(status: int, title: str, detail: Optional[str], code: Optional[str] = None):
    err: Dict[str, Any] = {'status': status, 'title': title, 'detail': detail}
    if code:
        err['code'] = code
    return {'error': err}


__all__ = [
    'WorkflowError', 'NotFoundError', 'ForbiddenError', 'InvalidStateError',
    'ValidationError', 'ConflictError', 'AuthenticationError', 'error_payload',
]
