"""
Payload codec for identity records
"""
