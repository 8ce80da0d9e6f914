from cashflow_sync.domain.errors import AlreadyLinkedError, NotFoundError
from cashflow_sync.integration.supabase import SupabaseClient, UniqueViolationError, eq
from cashflow_sync.logger import get_logger
from cashflow_sync.models import Account, ChatLink, LinkResult

logger = get_logger(__name__)

ACCOUNTS_TABLE = "accounts"
CHAT_LINKS_TABLE = "chat_links"


class IdentityLinker:
    def __init__(self, store: SupabaseClient) -> None:
        self.store = store

    async def resolve_account(self, email: str) -> Account:
        rows = await self.store.select(
            ACCOUNTS_TABLE,
            columns="id,email",
            where=[eq("email", email)],
            limit=1,
        )
        if not rows:
            raise NotFoundError("email", email)
        return Account.model_validate(rows[0])

    async def account_for_chat(self, chat_id: int) -> str | None:
        link = await self._link_for_chat(chat_id)
        return link.account_id if link else None

    async def _link_for_chat(self, chat_id: int) -> ChatLink | None:
        rows = await self.store.select(
            CHAT_LINKS_TABLE,
            columns="chat_id,account_id",
            where=[eq("chat_id", chat_id)],
            limit=1,
        )
        return ChatLink.model_validate(rows[0]) if rows else None

    async def _link_for_account(self, account_id: str) -> ChatLink | None:
        rows = await self.store.select(
            CHAT_LINKS_TABLE,
            columns="chat_id,account_id",
            where=[eq("account_id", account_id)],
            limit=1,
        )
        return ChatLink.model_validate(rows[0]) if rows else None

    async def _check_conflicts(self, chat_id: int, account_id: str) -> bool:
        """Raise on a conflicting link; return True when this exact pair already exists."""
        account_link = await self._link_for_account(account_id)
        if account_link and account_link.chat_id != chat_id:
            raise AlreadyLinkedError("account")

        chat_link = await self._link_for_chat(chat_id)
        if chat_link and chat_link.account_id != account_id:
            raise AlreadyLinkedError("chat")

        return account_link is not None

    async def link(self, chat_id: int, email: str) -> LinkResult:
        account = await self.resolve_account(email)

        if await self._check_conflicts(chat_id, account.id):
            logger.info("[LINK] Chat %s already linked to account %s.", chat_id, account.id)
            return LinkResult(account_id=account.id, chat_id=chat_id, created=False)

        try:
            await self.store.insert(
                CHAT_LINKS_TABLE,
                {"chat_id": chat_id, "account_id": account.id},
            )
        except UniqueViolationError:
            # Lost a race with a concurrent /link; report whatever won.
            logger.warning("[LINK] Concurrent link detected for chat %s / account %s.", chat_id, account.id)
            if await self._check_conflicts(chat_id, account.id):
                return LinkResult(account_id=account.id, chat_id=chat_id, created=False)
            raise

        logger.info("[LINK] Linked chat %s to account %s.", chat_id, account.id)
        return LinkResult(account_id=account.id, chat_id=chat_id, created=True)
