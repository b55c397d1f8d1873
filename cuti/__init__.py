"""
cuti - A Python CLI tool for managing Git worktrees.

cuti creates and removes worktrees next to the repository, can name branches
after Jira issues, keeps a layered global/local configuration and runs user
hooks around each worktree operation.
"""

__version__ = "1.0.0"
__author__ = "cuti"
