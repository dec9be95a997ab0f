"""
Shared Kernel Module
====================

Generic infrastructure shared by the bounded contexts (SLA tracking and
auto-assignment).

DO NOT add business logic from SLA or Assignment to shared kernel.
"""
