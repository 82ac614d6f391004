"""Complaint Tracker - Services"""
from .complaint_service import ComplaintService

__all__ = ["ComplaintService"]
