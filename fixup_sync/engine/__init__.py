"""
Engine — Branch resolution, change detection, change application,
commit generation and fixup commits.
"""
