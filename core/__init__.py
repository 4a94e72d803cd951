"""
Core business logic

This package holds the Room aggregate's rules:
- State machine: every room status change
- Managers: room lifecycle, story queue, voting rounds
- Repository: persistence of Room / User / Story
- Events: change notifications published after commit
- Locks: one writer per room
"""
