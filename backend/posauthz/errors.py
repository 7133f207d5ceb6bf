from __future__ import annotations
"""Authorization error taxonomy.

Store and guard code raises these; the app error handler in ``posauthz``
maps them to JSON bodies of the form ``{'status': ..., 'message': ...}``.

  ValidationError        400  malformed role name/description/permission set
  ProtectedRoleError     403  edit/delete of a system-protected role
  NotFoundError          404  role/user id no longer exists
  UnknownPermissionError --   guard declared with a code missing from the registry
  AuthorizationDenied    --   in-process guard denial (HTTP guard answers 403 instead)
"""
from typing import Dict, Optional


class AuthzError(Exception):
    status_code = 500
    status = 'error'

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> Dict[str, object]:
        return {'status': self.status, 'message': self.message}


class ValidationError(AuthzError):
    status_code = 400
    status = 'fail'

    def __init__(self, field: str, message: str, errors: Optional[Dict[str, str]] = None):
        super().__init__(message)
        self.field = field
        self.errors = dict(errors) if errors else {field: message}

    def to_dict(self):
        body = super().to_dict()
        body['field'] = self.field
        body['errors'] = dict(self.errors)
        return body


class ProtectedRoleError(AuthzError):
    status_code = 403
    status = 'fail'


class NotFoundError(AuthzError):
    status_code = 404
    status = 'fail'


class UnknownPermissionError(ValueError):
    def __init__(self, code: str):
        super().__init__(f'Unknown permission code: {code}')
        self.code = code


class AuthorizationDenied(PermissionError):
    """Raised by in-process guards. Carries no detail about the protected feature."""

    def __init__(self):
        super().__init__('Missing permission')


__all__ = [
    'AuthzError', 'ValidationError', 'ProtectedRoleError', 'NotFoundError',
    'UnknownPermissionError', 'AuthorizationDenied',
]
