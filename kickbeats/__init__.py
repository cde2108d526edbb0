"""
Kickbeats - practise hearing kick-drum rhythms.

Kickbeats generates a short random kick pattern, loops it on a MIDI output
after a four-click count-in, and leaves it to you to work out what you are
hearing before looking at the answer.

- **Musical randomness.** Kicks are drawn from the beat grid with weights
  taken from the metre's accent hierarchy, so downbeats and strong beats
  are favoured. Three complexity levels shift the balance between on-beat
  and syncopated hits.
- **Playable patterns only.** Every pattern starts on the downbeat, keeps a
  sensible density, never stacks more than two kicks in a row, and leaves
  neither too little nor too much space.
- **Fresh every time.** New patterns must differ from the last twenty by a
  minimum number of steps; the requirement relaxes gradually rather than
  failing outright.
- **Steady loop.** Each loop pass is timed from the moment playback
  started, so a late pass never pushes the next one back.

Minimal example:

    ```python
    import asyncio
    import kickbeats

    async def main () -> None:
        generator = kickbeats.WeightedGenerator()
        history = kickbeats.PatternHistory()
        pattern, _ = generator.generate_unique(kickbeats.TimeSignature(4, 4), kickbeats.Complexity.SIMPLE, history)
        history.add(pattern)

        await kickbeats.Sequencer().play(pattern, tempo_bpm=100)

    asyncio.run(main())
    ```

Package-level exports: ``BeatGrid``, ``Complexity``, ``Pattern``,
``PatternHistory``, ``Sequencer``, ``TimeSignature``, ``WeightedGenerator``.
"""

import kickbeats.generator
import kickbeats.grid
import kickbeats.pattern
import kickbeats.sequencer


BeatGrid = kickbeats.grid.BeatGrid
Complexity = kickbeats.pattern.Complexity
Pattern = kickbeats.pattern.Pattern
PatternHistory = kickbeats.pattern.PatternHistory
Sequencer = kickbeats.sequencer.Sequencer
TimeSignature = kickbeats.grid.TimeSignature
WeightedGenerator = kickbeats.generator.WeightedGenerator
