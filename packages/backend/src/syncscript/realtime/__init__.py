"""Real-time infrastructure — Redis + Socket.IO.

Services emit events to Socket.IO rooms after their database writes:
``user_{id}`` for personal notifications, ``vault_{id}`` for everyone
currently looking at a vault. With realtime_redis_fanout enabled the
emits travel over Redis pub/sub so every worker's sockets receive them.
"""
