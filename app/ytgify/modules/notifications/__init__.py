"""
Notifications: persisted activity records plus live delivery to connected clients.
"""
