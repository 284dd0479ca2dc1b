"""
Checkers engine package.

This package implements Russian draughts on an 8x8 board (mandatory captures,
flying kings, multi-jump chains) and a computer opponent using minimax with
alpha-beta pruning, iterative deepening and a hand-crafted evaluation.

Modules:
    constants — Piece values, evaluation weights, difficulty tiers
    board     — Immutable board, pieces, positions, serialization
    rules     — Move generation, move application, game status
    evaluate  — Static evaluation as a table of scoring terms
    search    — Minimax search, forced captures, time management
    game      — Game session: turn enforcement and move history
"""
