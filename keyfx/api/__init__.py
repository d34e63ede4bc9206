"""
HTTP and WebSocket interface of the keyfx service.
"""
