from __future__ import annotations

import pytest

from database import Store


@pytest.fixture
def store(tmp_path) -> Store:
    db = Store(str(tmp_path / "devmatch-test.db"))
    db.init_db()
    for profile_id, username in ((10, "ada"), (20, "linus"), (30, "grace")):
        db.upsert_profile(profile_id, username)
    return db
