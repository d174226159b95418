"""Deckcord - a Stream Deck button that launches or focuses Discord.

The plugin runs as an asyncio service connected to the Stream Deck host over
a local WebSocket. It tracks visible button instances, reacts to key presses
and keeps every button's running/offline state in sync with the Discord process.
"""
