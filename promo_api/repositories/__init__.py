"""레포지토리 패키지 — 테이블별 데이터 접근 계층.

Repositories package — Data access layer, one singleton per table.
Every method takes an ``AsyncSession`` as its first argument and only
flushes; committing is the caller's decision.
"""
