"""
Settlement kernel: domain records, typed errors and structured logging
shared by the settlement engines and services.
"""
