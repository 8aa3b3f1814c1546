"""SalesTrack package.

Feature modules (users, access, entries, notifications, attendance) each keep a
thin Flask controller on top of service and repository layers.
"""
