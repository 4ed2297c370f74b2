#!/usr/bin/env python3
"""
Password Verification Utility
Tests a password against a stored hash. Accepts bcrypt hashes and the
legacy 64-character SHA-256 digests still found on older client galleries.
"""
import getpass
import sys

from portfolio.utils.auth import hash_password, verify_password


def _prompt_new_hash():
    password = getpass.getpass("Enter new password: ")
    if not password:
        print("Error: Password cannot be empty")
        return
    if password != getpass.getpass("Confirm password: "):
        print("Error: Passwords do not match")
        return
    print("\nGenerated hash:")
    print(f"ADMIN_PASSWORD_HASH={hash_password(password)}")


def _interactive_test(hash_value: str):
    print(f"Hash: {hash_value[:20]}...")
    print()
    while True:
        password = getpass.getpass("Enter password to test (or 'quit' to exit): ")
        if password.lower() == 'quit':
            break
        if verify_password(password, hash_value):
            print("Password matches!")
            break
        print("Password does not match. Try again.\n")


def main():
    print("=" * 60)
    print("Password Hash Utility")
    print("=" * 60)
    print()

    if len(sys.argv) < 2:
        print("Usage:")
        print("  python verify_password.py <hash>           - Test password against hash")
        print("  python verify_password.py --generate       - Generate new hash")
        print("  python verify_password.py --test <hash>    - Interactive test mode")
        return

    if sys.argv[1] == "--generate":
        _prompt_new_hash()
    elif sys.argv[1] == "--test" and len(sys.argv) >= 3:
        _interactive_test(sys.argv[2])
    else:
        hash_value = sys.argv[1]
        print(f"Testing against hash: {hash_value[:30]}...")
        password = getpass.getpass("Enter password to test: ")
        if verify_password(password, hash_value):
            print("\nPassword matches!")
        else:
            print("\nPassword does not match.")
            print("Generate a new hash with: python verify_password.py --generate")


if __name__ == "__main__":
    main()
