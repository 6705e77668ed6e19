class PairTimerError(Exception):
    pass


class DocumentNotFoundError(PairTimerError):
    def __init__(self, pairing_key: str):
        super().__init__(f"Shared session document not found: {pairing_key}")
        self.pairing_key = pairing_key


class InvalidInputError(PairTimerError):
    pass


class IdentifierError(InvalidInputError):
    pass


class SettingsError(InvalidInputError):
    pass
