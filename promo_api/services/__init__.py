"""서비스 패키지 — 비즈니스 로직 계층.

Service package — Business logic layer.
Contains the use-case services: sessions, device registry, favorites, notification
dispatch, promotion sync and background maintenance. Services call
repositories for DB operations and flush; routers commit.
"""
