#!/usr/bin/env python3
"""
llama-relay - Entry Point

Run with: python run.py
Needs RELAY_TELEGRAM_TOKEN (or TELOXIDE_TOKEN) in the environment.
"""
from relay.main import main


if __name__ == "__main__":
    main()
