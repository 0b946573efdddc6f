"""Imperative charger actions."""

from dobi_fleet.actions.executor import ActionExecutor, ChargerAction

__all__ = ["ActionExecutor", "ChargerAction"]
