"""OpenCV building blocks that turn camera frames into marker poses."""
