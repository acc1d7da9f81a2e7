"""Language toolchain adapters (nvm, Node.js / Yarn)."""
