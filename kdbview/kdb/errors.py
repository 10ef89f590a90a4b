from kdbview.utils.serializable_exception import SerializableException


class KdbError(SerializableException):
    pass


class KdbConnectionError(KdbError):
    def format_message(self, message: str) -> str:
        host = self.extra_data.get("host")
        port = self.extra_data.get("port")
        if host is None:
            return message
        return f"Failed to connect to KDB+ at {host}:{port} - {message}"


class NotConnected(KdbError):
    pass


class KdbQueryError(KdbError):
    def format_message(self, message: str) -> str:
        return f"Query execution failed: {message}"


class InvalidTableName(KdbError):
    pass


class InvalidPagination(KdbError):
    pass
