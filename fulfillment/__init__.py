"""
Service Request Fulfillment Core

This package contains the core Python services:
- directory: Provider directory reader
- matching: Provider matching and ranking
- lifecycle: Status state machines for client requests and job applications
- conversion: Request-to-booking conversion
- notifier: Multi-channel notification service (email, SMS, push)
"""
