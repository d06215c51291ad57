from functools import lru_cache

from skinvault.core.config import get_settings
from skinvault.services.database_service import DynamoDBService


# Service Dependencies
@lru_cache()
def get_db_service() -> DynamoDBService:
    # The aiobotocore session is reusable across requests; clients are per call.
    return DynamoDBService(get_settings())
