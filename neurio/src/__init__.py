"""
Neurio bridge package.

Polls a Neurio CT sensor over HTTP, extracts line 1 / line 2 / total channel
readings, and publishes them as named variables into a shared Redis-backed
variable store.

CHANGELOG:
- 2026-10-17: Initial creation (STORY-001)

TODO:
- None
"""
