# app/core/notification_templates.py
# 通知範本設定：由 NotificationTemplateStore 持有，只能透過它的方法讀取 / 修改
import copy
import logging
import re
from typing import Dict, Mapping, Optional

from app.core.exceptions import InvalidStateError, NotFoundError

logger = logging.getLogger(__name__)

TEMPLATE_CHANNELS = ("email", "sms")

_PLACEHOLDER = re.compile(r"\{\{(\w+)\}\}")

# 預設範本 (category -> type -> channel -> 內容)
DEFAULT_TEMPLATES: Dict[str, Dict[str, Dict[str, str]]] = {
    "verification": {
        "approved": {
            "email": "<h2>Account Verified Successfully!</h2><p>Your account has been verified. You can now bid on projects.</p><p>{{feedback}}</p>",
            "sms": "SkillSwap: Your account has been verified! You now have full access to the platform.",
        },
        "rejected": {
            "email": "<h2>Verification Request Declined</h2><p>Please review the feedback below and submit new documents.</p><p><strong>Feedback:</strong> {{feedback}}</p>",
            "sms": "SkillSwap: Your verification was not approved. Please check your email for details.",
        },
    },
    "project": {
        "awarded": {
            "email": "<h2>Congratulations! Project Awarded</h2><p>You have been awarded the project: <strong>{{projectName}}</strong>.</p>",
            "sms": "SkillSwap: You got the job! Project {{projectName}} has been awarded to you.",
        },
        "completed": {
            "email": "<h2>Project Completed</h2><p>The project <strong>{{projectName}}</strong> has been marked as completed. Please leave a review.</p>",
            "sms": "SkillSwap: Project {{projectName}} completed. Don't forget to leave a review!",
        },
    },
    "payment": {
        "received": {
            "email": "<h2>Payment Received</h2><p>You have received a payment of <strong>${{amount}}</strong> for project <strong>{{projectName}}</strong>.</p>",
            "sms": "SkillSwap: Payment received! ${{amount}} for project {{projectName}}.",
        },
        "due": {
            "email": "<h2>Payment Due</h2><p>A payment of <strong>${{amount}}</strong> is due for project <strong>{{projectName}}</strong>.</p>",
            "sms": "SkillSwap: Payment reminder: ${{amount}} due for {{projectName}}.",
        },
    },
    "milestone": {
        "completed": {
            "email": "<h2>Milestone Completed</h2><p>Milestone <strong>{{milestoneName}}</strong> for project <strong>{{projectName}}</strong> has been completed.</p>",
            "sms": "SkillSwap: Milestone {{milestoneName}} completed for {{projectName}}.",
        },
        "approaching": {
            "email": "<h2>Milestone Approaching</h2><p>Milestone <strong>{{milestoneName}}</strong> for project <strong>{{projectName}}</strong> is due in <strong>{{daysLeft}}</strong> days.</p>",
            "sms": "SkillSwap: Milestone {{milestoneName}} due in {{daysLeft}} days.",
        },
    },
}


class NotificationTemplateStore:
    """
    通知範本的設定儲存。
    內部持有一份預設範本的複本；對外只回傳複本，修改必須經過 update_template。
    """

    def __init__(self, defaults: Optional[Mapping[str, Mapping[str, Mapping[str, str]]]] = None):
        self._defaults = copy.deepcopy(dict(defaults or DEFAULT_TEMPLATES))
        self._templates = copy.deepcopy(self._defaults)

    def list_templates(self) -> Dict[str, Dict[str, Dict[str, str]]]:
        return copy.deepcopy(self._templates)

    def get_template(self, category: str, template_type: str) -> Dict[str, str]:
        try:
            return dict(self._templates[category][template_type])
        except KeyError:
            raise NotFoundError(f"找不到範本 {category}.{template_type}")

    def update_template(self, category: str, template_type: str, channel: str, content: str) -> Dict[str, str]:
        """(管理員) 更新單一範本的某個通道內容"""
        if category not in self._templates or template_type not in self._templates[category]:
            raise NotFoundError(f"找不到範本 {category}.{template_type}")
        if channel not in TEMPLATE_CHANNELS:
            raise InvalidStateError(f"不支援的通知通道: {channel}")

        self._templates[category][template_type][channel] = content
        logger.info(f"Notification template updated: {category}.{template_type}.{channel}")
        return self.get_template(category, template_type)

    def render(
        self,
        category: str,
        template_type: str,
        channel: str,
        replacements: Optional[Mapping[str, object]] = None,
    ) -> str:
        """將 {{key}} 佔位符替換成實際值，未提供的佔位符保留原樣"""
        template = self.get_template(category, template_type)
        if channel not in template:
            raise InvalidStateError(f"不支援的通知通道: {channel}")
        values = replacements or {}

        def _substitute(match: re.Match) -> str:
            key = match.group(1)
            return str(values[key]) if key in values else match.group(0)

        return _PLACEHOLDER.sub(_substitute, template[channel])

    def reset(self) -> None:
        self._templates = copy.deepcopy(self._defaults)


# 應用程式持有的唯一實例
template_store = NotificationTemplateStore()


def get_template_store() -> NotificationTemplateStore:
    """FastAPI Dependency: 取得範本儲存 (測試時可 override)"""
    return template_store
