#!/usr/bin/env python3
"""
Homework Bot - Entry Point

Posts the daily homework digest from the class spreadsheet to Telegram.
The actual implementation is in the hwbot package.
"""

if __name__ == "__main__":
    from hwbot import main
    main()
