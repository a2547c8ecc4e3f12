"""Directory watching for the reloader.

Change notifications come from watchdog's inotify wrapper.  Rather than a
single recursive watch on the project root, the tree is walked up front and
every directory that is not excluded gets its own watch.  This lets excluded
subtrees (build output, virtualenvs, ``.git``) be pruned entirely: they are
never opened, listed or watched.

All of the watches live on one inotify instance, drained by one reader
thread, so a large tree does not run into the per-user instance limit.

Each watch is identified by an integer handle.  Events are decoded into
``RawChange(handle, name)`` records and posted to a channel that the
reloader's main loop blocks on; the ``WatchMap`` built during the walk is
what turns a handle back into a directory path.

Directories created after startup are not picked up.
"""
