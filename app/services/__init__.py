"""
Services layer - Business logic goes here.
Keep services focused on one concern (sessions, links, ingestion, etc.)

DESIGN PRINCIPLE:
- Services contain business logic, NOT routes
- The conversation engine decides, ChatService carries out
- Every report, from chat or the web form, goes through the ingestion pipeline
- Outbound transports (WhatsApp, email, storage) sit behind swappable interfaces
"""
