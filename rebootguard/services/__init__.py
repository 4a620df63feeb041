"""
rebootguard Services

- decision  - Pure decision engine (notify / reboot / nothing)
- system    - Uptime source and reboot execution
- exemption - Host exemption via directory group membership
- notify    - Desktop / console notifications and user responses
- orchestrator - One evaluation per invocation
- service   - Optional long-lived polling loop
"""
