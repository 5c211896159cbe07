"""
WebSocket Package

Socket.IO handlers for optional match change notifications.
"""
