"""
Request body validation

Collects every problem with a JSON body before answering, so clients get
one 400 with a details list instead of failing field by field.
"""
from urllib.parse import urlparse

_MISSING = object()


class ValidationError(Exception):
    def __init__(self, details: list):
        super().__init__('Validation error')
        self.details = details

    def to_response(self) -> dict:
        return {'error': 'Validation error', 'details': self.details}


def is_url(value) -> bool:
    if not isinstance(value, str):
        return False
    parsed = urlparse(value)
    return parsed.scheme in ('http', 'https') and bool(parsed.netloc)


class Validator:
    """
    Usage:
        v = Validator(request.get_json(silent=True))
        v.string('name', max_length=100)
        v.integer('current_step', required=False, positive=True)
        cleaned = v.validate()
    """

    def __init__(self, data):
        self.data = data if isinstance(data, dict) else {}
        self.details = []
        self.cleaned = {}

    def _error(self, field, message):
        self.details.append({'field': field, 'message': message})

    def _get(self, field, required, nullable):
        value = self.data.get(field, _MISSING)
        if value is _MISSING or (value is None and not nullable):
            if required:
                self._error(field, f'{field} is required')
            return _MISSING
        return value

    def string(self, field, required=True, min_length=1, max_length=None, nullable=False, url=False,
               strip=False):
        """strip=True trims the value before the length checks and stores it trimmed"""
        value = self._get(field, required, nullable)
        if value is _MISSING:
            return
        if value is None:
            self.cleaned[field] = None
            return
        if not isinstance(value, str):
            self._error(field, f'{field} must be a string')
            return
        if strip:
            value = value.strip()

        if len(value) < min_length:
            self._error(field, f'{field} must be at least {min_length} characters')
        elif max_length is not None and len(value) > max_length:
            self._error(field, f'{field} must be at most {max_length} characters')
        elif url and not is_url(value):
            self._error(field, f'{field} must be a valid URL')
        else:
            self.cleaned[field] = value

    def add_error(self, field, message):
        """Record a check the typed helpers can't express"""
        self._error(field, message)

    def integer(self, field, required=True, positive=False, nullable=False):
        value = self._get(field, required, nullable)
        if value is _MISSING:
            return
        if value is None:
            self.cleaned[field] = None
            return
        if isinstance(value, bool) or not isinstance(value, int):
            self._error(field, f'{field} must be an integer')
        elif positive and value <= 0:
            self._error(field, f'{field} must be positive')
        else:
            self.cleaned[field] = value

    def number(self, field, required=True, nullable=False, minimum=None):
        value = self._get(field, required, nullable)
        if value is _MISSING:
            return
        if value is None:
            self.cleaned[field] = None
            return
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            self._error(field, f'{field} must be a number')
        elif minimum is not None and value < minimum:
            self._error(field, f'{field} must be at least {minimum}')
        else:
            self.cleaned[field] = value

    def choice(self, field, choices, required=True):
        value = self._get(field, required, False)
        if value is _MISSING:
            return
        if value not in choices:
            self._error(field, f"{field} must be one of: {', '.join(choices)}")
        else:
            self.cleaned[field] = value

    def array(self, field, required=True, nullable=False):
        value = self._get(field, required, nullable)
        if value is _MISSING:
            return
        if value is not None and not isinstance(value, list):
            self._error(field, f'{field} must be a list')
        else:
            self.cleaned[field] = value

    def passthrough(self, field):
        """Pass a field through untouched when present"""
        if field in self.data:
            self.cleaned[field] = self.data[field]

    def validate(self) -> dict:
        if self.details:
            raise ValidationError(self.details)
        return self.cleaned
