"""
Middleware package for Allocation Service.
"""
