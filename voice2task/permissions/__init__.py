from .gate import PermissionGate, PermissionResult, PermissionStatus

__all__ = ["PermissionGate", "PermissionResult", "PermissionStatus"]
