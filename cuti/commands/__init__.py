"""
Command handlers for the cuti CLI.
"""
