"""
Task rows in the Tasks tab.
"""

from typing import List

from studio_sync.database import structure
from studio_sync.database.models import Client, Event, Freelancer, Profile, Task

from .base import EntitySyncHandler, EntityType, TabWrite, amount, date_cell


class TaskHandler(EntitySyncHandler):
    
    entity_type = EntityType.TASK
    primary_tab = structure.TASKS
    primary_headers = structure.TASKS_HEADERS
    deleted_label = 'Task "Deleted Task"'
    
    def load(self, entity_id) -> Task:
        return self._get(Task, entity_id, Task.firm_id == self.firm_id)
    
    def _assigned_to(self, task: Task) -> str:
        """Staff take precedence over freelancers; the kind is shown in brackets."""
        if task.assigned_to:
            profile = self.db.get(Profile, task.assigned_to)
            if profile and profile.full_name:
                return f"{profile.full_name} (STAFF)"
        if task.freelancer_id:
            freelancer = self.db.get(Freelancer, task.freelancer_id)
            if freelancer and freelancer.full_name:
                return f"{freelancer.full_name} (FREELANCER)"
        return "Unassigned"
    
    def build_writes(self, task: Task) -> List[TabWrite]:
        event = self.db.get(Event, task.event_id) if task.event_id else None
        
        client = event.client if event else None
        if client is None and task.client_id:
            client = self.db.get(Client, task.client_id)
        
        row = [
            str(task.id),
            task.title,
            self._assigned_to(task),
            client.name if client else "",
            (event.title or "") if event else "",
            date_cell(event.event_date) if event else "",
            task.task_type or "Other",
            task.description or "",
            date_cell(task.due_date),
            task.status,
            task.priority or "Medium",
            amount(task.amount) if task.amount is not None else "",
            date_cell(task.updated_at or task.created_at),
            "",
        ]
        return [TabWrite(self.primary_tab, self.primary_headers, row)]
    
    def describe(self, task: Task) -> str:
        return f'Task "{task.title}"'
