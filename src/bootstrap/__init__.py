"""Progressive cold-start loading: module loader, snapshots, load monitor."""
