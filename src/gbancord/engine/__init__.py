"""
The gban engine.

- **gban_queue.py**: single-concurrency FIFO of gban tasks.
- **actuation.py**: sequential per-guild loop with adaptive progress reporting.
- **progress.py**: progress cadence table and time throttle.
- **approval.py**: two-founder unban approvals with expiring timers.
- **gban_engine.py**: owner object tying the above to the store, the guild
  directory, the ban actuator and the log channel notifier.
"""
