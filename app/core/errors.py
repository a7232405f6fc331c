class IngestError(Exception):
    pass


class PayloadParseError(IngestError):
    reason = "parse_error"


class BatchValidationError(IngestError):
    reason = "invalid_batch"


class MissingMacError(BatchValidationError):
    reason = "missing_mac"

    def __init__(self, message: str = "MAC address is required"):
        super().__init__(message)


class MissingSamplesError(BatchValidationError):
    reason = "missing_samples"

    def __init__(self, message: str = "Data array is required"):
        super().__init__(message)


class InvalidSampleError(BatchValidationError):
    reason = "invalid_sample"

    def __init__(self, index: int, field: str, problem: str):
        self.index = index
        self.field = field
        super().__init__(f"Sample {index}: '{field}' {problem}")


class StoreError(IngestError):
    pass


class StoreUnavailableError(StoreError):
    pass
