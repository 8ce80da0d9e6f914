from typing import Literal

NotFoundKind = Literal["email", "category", "card", "default_stock_category"]
LinkSide = Literal["account", "chat"]
ValidationField = Literal["amount", "shares", "price", "type", "month", "symbol", "arg_count"]


class LedgerError(Exception):
    """Base class for failures the bot reports back to the user."""


class NotFoundError(LedgerError):
    def __init__(self, kind: NotFoundKind, name: str | None = None, suggestion: str | None = None):
        self.kind = kind
        self.name = name
        self.suggestion = suggestion
        label = f" '{name}'" if name else ""
        super().__init__(f"{kind}{label} not found")


class AlreadyLinkedError(LedgerError):
    def __init__(self, side: LinkSide):
        self.side = side
        super().__init__(f"{side} side already linked")


class CommandValidationError(LedgerError):
    def __init__(self, field: ValidationField, message: str):
        self.field = field
        self.message = message
        super().__init__(message)


class PersistenceError(LedgerError):
    """A read or write against the store failed."""


class UnknownCommandError(LedgerError):
    def __init__(self, command: str):
        self.command = command
        super().__init__(f"Unknown command {command}")
