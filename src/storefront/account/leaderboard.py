"""Score leaderboard across buyer accounts."""

from protean.utils.globals import current_domain

from storefront.account.account import BuyerAccount


def leaderboard(limit: int = 10) -> list[dict]:
    accounts = current_domain.repository_for(BuyerAccount).top_by_score(limit)
    return [
        {
            "rank": rank,
            "account_id": str(account.id),
            "username": account.username,
            "name": account.name,
            "score": account.score or 0,
            "cards": len(account.owned_cards()),
        }
        for rank, account in enumerate(accounts, start=1)
    ]
