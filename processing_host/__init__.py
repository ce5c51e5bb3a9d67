"""Sample host exposing a command-processing core over HTTP."""
