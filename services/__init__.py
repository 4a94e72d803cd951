"""
Service layer

Pure computation, no state transitions:
- ConsensusService: vote tallying
- VotingSystemService: deck registry
- NamingService: room codes and text validation
- SnapshotService: read-only room projections
"""
