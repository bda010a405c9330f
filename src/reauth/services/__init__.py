"""Operator-facing services layered on the re-authentication core."""

from reauth.services.manual_injection import ManualInjectionService, ProfileStatus

__all__ = ["ManualInjectionService", "ProfileStatus"]
