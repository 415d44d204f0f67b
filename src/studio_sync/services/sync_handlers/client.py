"""
Client rows in the Clients tab.
"""

from typing import List

from studio_sync.database import structure
from studio_sync.database.models import Client

from .base import EntitySyncHandler, EntityType, TabWrite


class ClientHandler(EntitySyncHandler):
    
    entity_type = EntityType.CLIENT
    primary_tab = structure.CLIENTS
    primary_headers = structure.CLIENTS_HEADERS
    deleted_label = 'Client "Deleted Client"'
    
    def load(self, entity_id) -> Client:
        return self._get(Client, entity_id, Client.firm_id == self.firm_id)
    
    def build_writes(self, client: Client) -> List[TabWrite]:
        row = [
            str(client.id),
            client.name,
            client.phone or "",
            client.email or "",
            client.address or "",
            client.notes or "",
        ]
        return [TabWrite(self.primary_tab, self.primary_headers, row)]
    
    def describe(self, client: Client) -> str:
        return f'Client "{client.name}"'
