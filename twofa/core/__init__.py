"""Pure TOTP logic, CLI, onboarding and terminal UI."""
