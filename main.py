"""MailCrypt command-line entry point."""

from mailcrypt.cli import main

if __name__ == "__main__":
    main()
