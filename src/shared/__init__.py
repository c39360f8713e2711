"""
Shared Layer - Cross-Cutting Concerns
Configuration, structured logging, error mapping, database access and security
"""
