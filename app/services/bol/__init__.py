from .client import BolClient
from .status_mapping import map_status
from .sync import BolOrderSyncService, SyncResult
from .token_manager import BolTokenCache
