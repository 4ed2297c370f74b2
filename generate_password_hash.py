#!/usr/bin/env python3
"""
Password Hash Generator
Generates bcrypt hashes for the CMS admin password or a client gallery password.
Run this script to create the ADMIN_PASSWORD_HASH for your .env file.
"""
import getpass

from portfolio.utils.auth import hash_password


def main():
    print("=" * 60)
    print("Portfolio Password Hash Generator")
    print("=" * 60)
    print()
    print("Copy the output to your .env file as ADMIN_PASSWORD_HASH")
    print()

    password = getpass.getpass("Enter password: ")
    if not password:
        print("\nError: Password cannot be empty")
        return

    password_confirm = getpass.getpass("Confirm password: ")
    if password != password_confirm:
        print("\nError: Passwords do not match")
        return

    print("\nGenerating hash...")
    hashed = hash_password(password)

    print("\nSuccess! Copy this line to your .env file:\n")
    print(f"ADMIN_PASSWORD_HASH={hashed}")
    print()
    print("Keep this hash secret and never commit it to version control!")


if __name__ == "__main__":
    main()
