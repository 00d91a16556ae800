"""
Fixup Sync — Mirror source-file changes into an operations repository.

Keeps a mirror clone on the same branch as the source repository,
propagates added/modified/deleted files as commits, and periodically
folds uncommitted mirror edits into history with fixup commits.
"""

__version__ = "1.0.0"
