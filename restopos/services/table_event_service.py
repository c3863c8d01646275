"""
Push table grid changes to connected devices
"""

from datetime import datetime
from typing import Optional

from restopos.api.ws import TABLES_CHANNEL, WebSocketManager

class TableEventService:
    """Broadcasts table changes so grids refresh without waiting for the next poll"""

    def __init__(self, websocket_manager: WebSocketManager):
        self.websocket_manager = websocket_manager

    async def broadcast_table_update(
        self,
        table_id: int,
        update_type: str = "table_update",
        actor: Optional[str] = None,
        is_occupied: Optional[bool] = None
    ):
        """Tell every connected grid that a table changed"""
        message = {
            "type": update_type,
            "table_id": table_id,
            "is_occupied": is_occupied,
            "actor": actor,
            "timestamp": datetime.utcnow().isoformat()
        }

        await self.websocket_manager.broadcast(TABLES_CHANNEL, message)
