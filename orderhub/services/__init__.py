"""
Services Module

Order core, realtime fan-out and the collaborators they consume:
    - orders: transaction manager, state machine, status service
    - realtime: connection registry, dispatch hub, WebSocket gateway
    - catalog: product lookup and table directory
    - cache: cache invalidation (Mock / Celery)
    - promotions: order discounts
"""
