from __future__ import annotations

PARTNER_ONE = 1
PARTNER_TWO = 2
OUTSIDER = 99


def login(client, user_id: int) -> None:
    with client.session_transaction() as sess:
        sess["user_id"] = user_id
