"""octwave — octave notation to mono PCM WAV."""
