"""Data models shared between the client and its collaborators."""

from .notifications import UnsolicitedNotification
