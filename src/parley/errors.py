class ParleyError(Exception):
    pass


class SessionNotFoundError(ParleyError, KeyError):
    def __init__(self, session_id: str):
        super().__init__(session_id)
        self.session_id = session_id

    def __str__(self) -> str:
        return f"Unknown session: {self.session_id}"


class ConfigError(ParleyError):
    pass
