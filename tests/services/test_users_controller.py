"""Tests for turning stored user items into API models."""
from skinvault.controllers.users import item_to_user


def test_item_to_user_orders_favorites_by_added_at() -> None:
    item = {
        "uid": "uid-1",
        "email": "steve@example.com",
        "created_at": "2026-10-01T08:00:00+00:00",
        "last_login": "2026-10-17T12:00:00+00:00",
        "favorite_skins": {
            "notch": {"username": "Notch", "skin_image": "data:a", "added_at": "2026-10-03T00:00:00+00:00"},
            "jeb_": {"username": "jeb_", "skin_image": "data:b", "added_at": "2026-10-02T00:00:00+00:00"},
        },
    }

    user = item_to_user(item)

    assert [f.username for f in user.favorite_skins] == ["jeb_", "Notch"]
    assert user.skin_history == []
    assert user.minecraft_username is None


def test_item_to_user_serializes_camel_case() -> None:
    item = {
        "uid": "uid-1",
        "email": "steve@example.com",
        "created_at": "2026-10-01T08:00:00+00:00",
        "last_login": "2026-10-17T12:00:00+00:00",
    }
    dumped = item_to_user(item).model_dump(by_alias=True)
    assert {"createdAt", "lastLogin", "favoriteSkins", "minecraftUsername"} <= set(dumped)
