"""flowscope monitor — rendering of pipeline snapshots.

Modules
-------
dot
    Pure DOT renderer: node colors by execution state, edge labels and
    colors by backlog.
svg
    Runs Graphviz to turn DOT into SVG and reads the image size back.
console
    ``WatchView`` turns scheduler callbacks into Rich renderables,
    including continuous ``Rich.Live`` mode.
"""
