"""
lispbeat - a small Lisp for writing drum patterns and melodies.

Programs are plain S-expressions. Evaluating one produces immutable music
event descriptors (notes, chords, sequences, beat machines, drum machines
with arrangements and tracks) that a player turns into sound. The bundled
player renders to a Standard MIDI File.

Language:

- **Core forms.** ``quote`` (and ``'x``), ``let`` with sequential bindings,
  ``lambda`` closures with lexical scope, and ``if``.
- **Named arguments.** ``(step 1 :pitch 12 :volume -3)`` - keyword symbols
  pair with the value after them. Music constructors accept them; plain
  arithmetic and user lambdas reject them with a clear error.
- **Polyrhythm.** Each drum-machine track has its own ``:bars`` and
  ``:time`` (steps per measure) and repeats inside its arrangement's loop.
- **Errors with positions.** Every lexing, parsing and evaluation error
  carries a line, a column and a snippet of the offending form.

Minimal example:

```python
import lispbeat

results = lispbeat.run('''
	(drum-machine
		(arrangement :bars 2
			(track "kick"  '((step 1) (step 0) (step 0) (step 0)) :time 4)
			(track "snare" '((step 0) (step 1)) :time 2 :volume -3)))
''')

triggers = lispbeat.schedule_program(results, loops=4)
lispbeat.render_midi(triggers, "beat.mid", tempo=lispbeat.program_tempo(results))
```

From the command line: ``python -m lispbeat beat.lisp --render beat.mid``.

Package-level exports: ``run``, ``tokenize``, ``parse``, ``parse_program``,
``interpret``, ``evaluate``, ``global_environment``, ``schedule``,
``schedule_program``, ``program_tempo``, ``render_midi``, ``SoundBank``,
``LispbeatError``.
"""

import lispbeat.errors
import lispbeat.evaluator
import lispbeat.lexer
import lispbeat.midi_render
import lispbeat.parser
import lispbeat.scheduler
import lispbeat.sounds


run = lispbeat.evaluator.run
tokenize = lispbeat.lexer.tokenize
parse = lispbeat.parser.parse
parse_program = lispbeat.parser.parse_program
interpret = lispbeat.evaluator.interpret
evaluate = lispbeat.evaluator.evaluate
global_environment = lispbeat.evaluator.global_environment
schedule = lispbeat.scheduler.schedule
schedule_program = lispbeat.scheduler.schedule_program
program_tempo = lispbeat.scheduler.program_tempo
render_midi = lispbeat.midi_render.render_midi
SoundBank = lispbeat.sounds.SoundBank
LispbeatError = lispbeat.errors.LispbeatError
