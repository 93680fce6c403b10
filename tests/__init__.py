"""Test package for the PSAT trainer.

Core tests exercise the pure state engine directly; headless simulations
drive it through SessionDriver with a fake clock; smoke tests run the pygame
shell with SDL's dummy video/audio drivers. Run ``pytest`` from the project
root.
"""
