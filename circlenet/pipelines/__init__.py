"""
Pipeline functions that orchestrate multiple services.
"""
