"""Configuration read from command line flags, environment variables and defaults."""