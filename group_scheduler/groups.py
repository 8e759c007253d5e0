"""Group list, current-group selection and member lookup.

Joining a group happens elsewhere. Right after a join the group list may not
include the new group yet, so ``await_joined_group`` polls the list until it
shows up and then selects it.
"""

import asyncio
import logging
from typing import List, Optional

from group_scheduler.api_client import SchedulerApiClient
from group_scheduler.config import GroupPollConfig
from group_scheduler.errors import NetworkFailure, ServerError
from group_scheduler.models import Group, GroupMember
from group_scheduler.notifications import Notifier

logger = logging.getLogger(__name__)


class GroupDirectory:
    def __init__(
        self,
        api: SchedulerApiClient,
        notifier: Notifier,
        poll: Optional[GroupPollConfig] = None,
    ):
        self.api = api
        self.notifier = notifier
        self.poll = poll or GroupPollConfig()
        self.groups: List[Group] = []
        self.current_group: Optional[Group] = None
        self.members: List[GroupMember] = []
        self.is_loading = False

    def find(self, group_id: str) -> Optional[Group]:
        return next((g for g in self.groups if g.id == str(group_id)), None)

    async def load_groups(self) -> List[Group]:
        self.is_loading = True
        try:
            self.groups = await self.api.list_groups()
            logger.info(f"Loaded {len(self.groups)} groups")
        except (NetworkFailure, ServerError) as e:
            logger.error(f"Failed to load groups: {e}")
            self.groups = []
            self.notifier.error(f"Could not load groups: {e}")
        finally:
            self.is_loading = False

        if self.current_group and not self.find(self.current_group.id):
            logger.info(f"Current group {self.current_group.id} is no longer listed")
            self.current_group = None
            self.members = []
        return self.groups

    async def select(self, group_id: Optional[str]) -> Optional[Group]:
        """Make ``group_id`` the current group and load its members."""
        if group_id is None:
            self.current_group = None
            self.members = []
            return None
        group = self.find(group_id)
        if group is None:
            logger.warning(f"Cannot select unknown group {group_id}")
            return None
        self.current_group = group
        await self.load_members(group.id)
        return group

    async def load_members(self, group_id: str) -> List[GroupMember]:
        try:
            self.members = await self.api.list_group_members(group_id)
            logger.info(f"Loaded {len(self.members)} members of group {group_id}")
        except (NetworkFailure, ServerError) as e:
            logger.error(f"Failed to load members of group {group_id}: {e}")
            self.members = []
            self.notifier.error(f"Could not load group members: {e}")
        return self.members

    async def await_joined_group(self, group_id: str) -> Optional[Group]:
        """Poll the group list until ``group_id`` appears, then select it."""
        for attempt in range(1, self.poll.attempts + 1):
            await self.load_groups()
            if self.find(group_id) is not None:
                logger.info(f"Joined group {group_id} visible after {attempt} attempt(s)")
                return await self.select(group_id)
            if attempt < self.poll.attempts:
                await asyncio.sleep(self.poll.interval_seconds)

        logger.warning(
            f"Group {group_id} did not appear after {self.poll.attempts} attempts"
        )
        return None
