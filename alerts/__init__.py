"""Alert evaluation: matching, cooldowns, notification policy and the cycle orchestrator."""
from alerts.engine import AlertOrchestrator
from alerts.rules_manager import RulesManager
from alerts.matcher import match_conditions
from alerts.cooldown import is_in_cooldown
from alerts.policy import NotificationPolicy
