class TallyError(Exception):
    pass


class NotFoundError(TallyError):
    pass


class ValidationError(TallyError):
    pass


class PersistenceError(TallyError):
    pass


class DecodeError(TallyError):
    def __init__(self, message: str, path: str | None = None):
        self.path = path
        super().__init__(f"{path}: {message}" if path else message)


class AmbiguousError(TallyError):
    def __init__(self, ref: str, count: int = 0, sample: list[str] | None = None):
        self.ref = ref
        self.count = count
        self.sample = sample or []
        count_note = f" ({count})" if count else ""
        note = f": {', '.join(self.sample)}" if self.sample else ""
        super().__init__(f"ambiguous ref '{ref}' matches multiple habits{count_note}{note}")
