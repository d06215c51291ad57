import logging
from typing import Any, Dict, Optional, Tuple, Union
from aiobotocore.session import get_session
from botocore.exceptions import ClientError
from decimal import Decimal

from skinvault.core.config import Settings
from skinvault.core.exceptions import DuplicateFavoriteError, ServerError, UserNotFoundError

logger = logging.getLogger(__name__)


CONDITION_FAILED = "ConditionalCheckFailedException"


def favorite_key(username: str) -> str:
    """Map key a favorite is stored under; usernames compare case-insensitively."""
    return username.lower()


class DynamoDBService:
    """Small wrapper around an aiobotocore DynamoDB client.

    One item per user, keyed by ``uid``. Favorites live in the ``favorite_skins``
    map keyed by the lower-cased username, which lets every favorites write be a
    single conditional UpdateItem instead of a read-modify-write.
    """

    def __init__(self, settings: Settings):
        self.settings = settings
        # aiobotocore session used to create async clients
        self.session = get_session()

    async def _get_client(self):
        """Create and return an async DynamoDB client.

        The method returns a client instance that can be used in an
        async context manager (``async with client as dynamodb``).
        """
        client_kwargs = {"region_name": self.settings.AWS_DEFAULT_REGION}
        if self.settings.AWS_ACCESS_KEY_ID:
            client_kwargs["aws_access_key_id"] = self.settings.AWS_ACCESS_KEY_ID
            client_kwargs["aws_secret_access_key"] = self.settings.AWS_SECRET_ACCESS_KEY
        if self.settings.AWS_SESSION_TOKEN:
            client_kwargs["aws_session_token"] = self.settings.AWS_SESSION_TOKEN
        if self.settings.DYNAMODB_ENDPOINT_URL:
            client_kwargs["endpoint_url"] = self.settings.DYNAMODB_ENDPOINT_URL
        return self.session.create_client("dynamodb", **client_kwargs)

    # ---- Serialization helpers -------------------------------------------------
    def _serialize_value(self, value: Any) -> Dict[str, Any]:
        """Serialize a single Python value into the DynamoDB wire format.

        Numbers become 'N', strings 'S', booleans 'BOOL', None 'NULL', dicts
        'M' and lists 'L' (both recursively). Falls back to string for
        unknown types such as datetimes.
        """
        if isinstance(value, bool):
            return {"BOOL": value}
        if value is None:
            return {"NULL": True}
        if isinstance(value, (int, float, Decimal)):
            return {"N": str(value)}
        if isinstance(value, str):
            return {"S": value}
        if isinstance(value, dict):
            return {"M": self._serialize_item(value)}
        if isinstance(value, (list, tuple)):
            return {"L": [self._serialize_value(v) for v in value]}
        if hasattr(value, "isoformat"):
            return {"S": value.isoformat()}
        # Default fallback: stringify unknown types
        return {"S": str(value)}

    def _serialize_item(self, record: Dict[str, Any]) -> Dict[str, Any]:
        """Convert a Python dict into a DynamoDB Item (or map) dict.

        Note: empty strings are omitted, an empty string never carries
        information in this schema.
        """
        item: Dict[str, Any] = {}
        for key, value in record.items():
            if isinstance(value, str) and value == "":
                continue
            item[key] = self._serialize_value(value)
        return item

    # ---- Deserialization helpers ----------------------------------------------
    def _deserialize_number(self, token: str) -> Union[int, float]:
        """Convert a DynamoDB 'N' token to int when possible, else float.

        Uses Decimal to avoid floating point surprises when parsing.
        """
        try:
            return int(token)
        except ValueError:
            return float(Decimal(token))

    def _deserialize_value(self, typed: Dict[str, Any]) -> Any:
        # typed is a dict like {'S': 'value'} or {'M': {...}}
        type_key = next(iter(typed))
        val = typed[type_key]

        if type_key == "S":
            return val
        if type_key == "N":
            return self._deserialize_number(val)
        if type_key == "M":
            return self._deserialize_item(val)
        if type_key == "L":
            return [self._deserialize_value(v) for v in val]
        if type_key == "BOOL":
            return val
        if type_key == "NULL":
            return None
        logger.warning("Unsupported DynamoDB type %s, keeping raw value", type_key)
        return val

    def _deserialize_item(self, item: Dict[str, Any]) -> Dict[str, Any]:
        """Convert a DynamoDB Item into a plain Python dict."""
        return {key: self._deserialize_value(typed) for key, typed in item.items()}

    def _key(self, uid: str) -> Dict[str, Any]:
        return {"uid": {"S": uid}}

    # ---- Public methods -------------------------------------------------------
    async def get_user(self, uid: str) -> Optional[Dict[str, Any]]:
        """Fetch a single user item by uid.

        Returns the deserialized item or None if not found.
        """
        try:
            client = await self._get_client()
            async with client as dynamodb:
                response = await dynamodb.get_item(
                    TableName=self.settings.DYNAMODB_TABLE_NAME,
                    Key=self._key(uid),
                    ConsistentRead=True,
                )
        except ClientError as e:
            logger.exception("Failed to fetch user %s", uid)
            raise ServerError() from e

        logger.debug("Fetched user %s", uid)
        item = response.get("Item")
        return self._deserialize_item(item) if item else None

    async def upsert_user(self, uid: str, email: str, now: str) -> Tuple[Dict[str, Any], bool]:
        """Create the user item or refresh its last login, in one UpdateItem.

        ``email`` and ``created_at`` are only written when absent. Returns the
        stored item and whether it was created by this call.
        """
        try:
            client = await self._get_client()
            async with client as dynamodb:
                response = await dynamodb.update_item(
                    TableName=self.settings.DYNAMODB_TABLE_NAME,
                    Key=self._key(uid),
                    UpdateExpression=(
                        "SET email = if_not_exists(email, :email), "
                        "created_at = if_not_exists(created_at, :now), "
                        "last_login = :now, "
                        "favorite_skins = if_not_exists(favorite_skins, :no_favorites), "
                        "skin_history = if_not_exists(skin_history, :no_history)"
                    ),
                    ExpressionAttributeValues={
                        ":email": {"S": email},
                        ":now": {"S": now},
                        ":no_favorites": {"M": {}},
                        ":no_history": {"L": []},
                    },
                    ReturnValues="ALL_NEW",
                )
        except ClientError as e:
            logger.exception("Failed to upsert user %s", uid)
            raise ServerError() from e

        item = self._deserialize_item(response["Attributes"])
        created = item.get("created_at") == now
        logger.info("%s user %s", "Created" if created else "Refreshed login for", uid)
        return item, created

    async def add_favorite(self, uid: str, favorite: Dict[str, Any]) -> Dict[str, Any]:
        """Insert a favorite unless one with the same username already exists.

        The existence check and the write are a single conditional update, so
        two concurrent adds of one username cannot both succeed.
        """
        try:
            client = await self._get_client()
            async with client as dynamodb:
                response = await dynamodb.update_item(
                    TableName=self.settings.DYNAMODB_TABLE_NAME,
                    Key=self._key(uid),
                    UpdateExpression="SET favorite_skins.#fav = :fav",
                    ConditionExpression="attribute_exists(#uid) AND attribute_not_exists(favorite_skins.#fav)",
                    ExpressionAttributeNames={"#uid": "uid", "#fav": favorite_key(favorite["username"])},
                    ExpressionAttributeValues={":fav": self._serialize_value(favorite)},
                    ReturnValues="ALL_NEW",
                )
        except ClientError as e:
            if e.response.get("Error", {}).get("Code") == CONDITION_FAILED:
                if await self.get_user(uid) is None:
                    raise UserNotFoundError() from e
                logger.info("Favorite %s already stored for user %s", favorite["username"], uid)
                raise DuplicateFavoriteError() from e
            logger.exception("Failed to add favorite for user %s", uid)
            raise ServerError() from e

        logger.info("Added favorite %s for user %s", favorite["username"], uid)
        return self._deserialize_item(response["Attributes"])

    async def remove_favorite(self, uid: str, username: str) -> Dict[str, Any]:
        """Remove the favorite matching ``username`` case-insensitively.

        Removing a favorite that is not stored is a no-op.
        """
        try:
            client = await self._get_client()
            async with client as dynamodb:
                response = await dynamodb.update_item(
                    TableName=self.settings.DYNAMODB_TABLE_NAME,
                    Key=self._key(uid),
                    UpdateExpression="REMOVE favorite_skins.#fav",
                    ConditionExpression="attribute_exists(#uid)",
                    ExpressionAttributeNames={"#uid": "uid", "#fav": favorite_key(username)},
                    ReturnValues="ALL_NEW",
                )
        except ClientError as e:
            if e.response.get("Error", {}).get("Code") == CONDITION_FAILED:
                raise UserNotFoundError() from e
            logger.exception("Failed to remove favorite for user %s", uid)
            raise ServerError() from e

        logger.info("Removed favorite %s for user %s", username, uid)
        return self._deserialize_item(response["Attributes"])

    async def set_minecraft_username(self, uid: str, minecraft_username: Optional[str]) -> Dict[str, Any]:
        try:
            client = await self._get_client()
            async with client as dynamodb:
                response = await dynamodb.update_item(
                    TableName=self.settings.DYNAMODB_TABLE_NAME,
                    Key=self._key(uid),
                    UpdateExpression="SET minecraft_username = :name",
                    ConditionExpression="attribute_exists(#uid)",
                    ExpressionAttributeNames={"#uid": "uid"},
                    ExpressionAttributeValues={":name": self._serialize_value(minecraft_username or None)},
                    ReturnValues="ALL_NEW",
                )
        except ClientError as e:
            if e.response.get("Error", {}).get("Code") == CONDITION_FAILED:
                raise UserNotFoundError() from e
            logger.exception("Failed to update minecraft username for user %s", uid)
            raise ServerError() from e

        logger.debug("Set minecraft username for user %s -> %s", uid, minecraft_username)
        return self._deserialize_item(response["Attributes"])

    async def append_skin_search(self, uid: str, entry: Dict[str, Any], limit: int) -> Dict[str, Any]:
        """Append a search to the user's skin history, keeping the newest ``limit`` entries."""
        try:
            client = await self._get_client()
            async with client as dynamodb:
                response = await dynamodb.update_item(
                    TableName=self.settings.DYNAMODB_TABLE_NAME,
                    Key=self._key(uid),
                    UpdateExpression="SET skin_history = list_append(if_not_exists(skin_history, :no_history), :entry)",
                    ConditionExpression="attribute_exists(#uid)",
                    ExpressionAttributeNames={"#uid": "uid"},
                    ExpressionAttributeValues={
                        ":entry": {"L": [self._serialize_value(entry)]},
                        ":no_history": {"L": []},
                    },
                    ReturnValues="ALL_NEW",
                )
                item = self._deserialize_item(response["Attributes"])

                overflow = len(item.get("skin_history", [])) - limit
                if overflow > 0:
                    stale = ", ".join(f"skin_history[{i}]" for i in range(overflow))
                    response = await dynamodb.update_item(
                        TableName=self.settings.DYNAMODB_TABLE_NAME,
                        Key=self._key(uid),
                        UpdateExpression=f"REMOVE {stale}",
                        ReturnValues="ALL_NEW",
                    )
                    item = self._deserialize_item(response["Attributes"])
        except ClientError as e:
            if e.response.get("Error", {}).get("Code") == CONDITION_FAILED:
                raise UserNotFoundError() from e
            logger.exception("Failed to record skin search for user %s", uid)
            raise ServerError() from e

        logger.debug("Recorded skin search %s for user %s", entry.get("username"), uid)
        return item
