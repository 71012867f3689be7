class DomainError(Exception):
    code: str = "domain_error"
    status: int = 400

    def __init__(self, message: str = "", *, code: str | None = None, status: int | None = None):
        super().__init__(message or self.__class__.__name__)
        if code: self.code = code
        if status: self.status = status

class NotFound(DomainError):
    code = "not_found"
    status = 404

class Conflict(DomainError):
    code = "conflict"
    status = 409

class Forbidden(DomainError):
    code = "forbidden"
    status = 403

class WeightValidationError(DomainError):
    code = "invalid_weight"
    status = 400

    def __init__(self, field: str, message: str = ""):
        super().__init__(message or f"Invalid weight for {field}")
        self.field = field

class ZeroWeightSumError(DomainError):
    code = "zero_weight_sum"
    status = 400

    def __init__(self, message: str = "Total weight cannot be zero"):
        super().__init__(message)

class RecommendationUnavailable(DomainError):
    code = "recommendations_unavailable"
    status = 503
