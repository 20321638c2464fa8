"""MediaPipe landmark detection."""
