"""Normalize provider-granted scopes back to the configured short names.

Providers often grant fully-qualified scopes, e.g.
``https://www.googleapis.com/auth/userinfo.email`` for a requested ``email``.
"""

from relay.provider.types import ProviderTokenResponse


def reconcile_scopes(requested: str, granted: str) -> str:
    """Return the requested scopes that were granted, in requested order.

    Each granted scope satisfies at most one requested scope. Requested scopes
    with no match are dropped, which reflects a partial grant.
    """
    pool = granted.split()
    matched: list[str] = []
    for scope in requested.split():
        for i, candidate in enumerate(pool):
            if candidate.endswith(scope):
                matched.append(scope)
                del pool[i]
                break
    return " ".join(matched)


def apply_reconciled_scope(token: ProviderTokenResponse, requested: str) -> None:
    """Replace ``token.scope`` in place with its reconciled form."""
    token.scope = reconcile_scopes(requested, token.scope)
