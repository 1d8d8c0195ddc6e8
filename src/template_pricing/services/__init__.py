"""Service subpackage - template loading, grid uploads and worksheet pricing."""
