"""Core application for the MedCare backend.

Models, services, views and WebSocket consumers for appointments,
payments, the pharmacy shop and user notifications.
"""
