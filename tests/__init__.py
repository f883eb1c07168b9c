"""
Sleeper System Test Suite.

This package contains automated tests for:
- Outcome table and modifier clamping
- Dice pool lifecycle and the day clock
- At-most-once die claims under concurrency
- Challenge lifecycle and attempt statistics
- Event hub fan-out and the client reconciler
- The HTTP and socket surface

Run tests with: pytest
Run with coverage: pytest --cov=sleeper
"""
