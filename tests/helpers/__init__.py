"""Test helpers: fakes for the Score Provider and transport, plus data builders."""
