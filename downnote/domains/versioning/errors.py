class VersioningError(Exception):
    """Базовая ошибка подсистемы версионирования"""


class NotFoundError(VersioningError):
    """Документ или снимок не найден.

    Отсутствующий документ, отсутствующий снимок и снимок чужого документа
    дают одно и то же сообщение.
    """

    def __init__(self, message: str = "Document or version not found"):
        super().__init__(message)


class StoreUnavailableError(VersioningError):
    """Временный сбой хранилища"""


class ValidationError(VersioningError):
    """Некорректные данные гостевых документов"""


class ConcurrentModificationError(VersioningError):
    """Документ изменился после чтения (не совпал номер версии)"""

    def __init__(self, document_id, expected_version: int):
        self.document_id = document_id
        self.expected_version = expected_version
        super().__init__(
            f"Document {document_id} was modified concurrently (expected version {expected_version})"
        )


class RestoreFailedError(VersioningError):
    """Восстановление прервано на шаге `step`, документ не перезаписан"""

    def __init__(self, step: str, message: str):
        self.step = step
        super().__init__(message)
