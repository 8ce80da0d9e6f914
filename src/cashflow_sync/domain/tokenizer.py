import re

# A closed "..." span, or a run of non-space characters.
_TOKEN_RE = re.compile(r'"([^"]*)"|(\S+)')


def tokenize(text: str | None) -> list[str]:
    """
    Split a chat message into tokens.

    Double-quoted spans are kept whole with the quotes removed. There is no
    escaping; a quote that is never closed is dropped and the text after it
    is split on whitespace like everything else.
    """
    if not text:
        return []

    tokens: list[str] = []
    for match in _TOKEN_RE.finditer(text.strip()):
        quoted, bare = match.groups()
        if quoted is not None:
            tokens.append(quoted)
            continue
        bare = bare.replace('"', "")
        if bare:
            tokens.append(bare)
    return tokens


def split_command(tokens: list[str]) -> tuple[str | None, list[str]]:
    if not tokens:
        return None, []
    head, args = tokens[0], tokens[1:]
    if not head.startswith("/"):
        return None, args
    # Group chats address commands as /help@SomeBot.
    command = head.split("@", 1)[0].lower()
    return command, args
