"""LINE Messaging API adapter."""
