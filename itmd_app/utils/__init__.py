"""
Utility functions module.

Timezone and calendar helpers shared by the heading parser, the event time
resolver and the statistics calculator.

Time Semantics:
- A date heading (``## 2024-03-01 @Asia/Tokyo``) sets the wall-clock date and zone
- Event clock times are wall-clock times in that zone unless overridden inline
- Offsets are canonicalized to ``UTC+HH:MM``; IANA names are kept verbatim
- A missing zone resolves in UTC so output never depends on the host machine
"""
