import pytest

import lispbeat.errors
import lispbeat.evaluator
import lispbeat.events
import lispbeat.primitives


# ─── Arithmetic and comparison ───────────────────────────────────────


@pytest.mark.parametrize("source, expected", [
	("(+)", 0),
	("(+ 1.5 2)", 3.5),
	("(- 10 3 2)", 5),
	("(*)", 1),
	("(* 2 3 4)", 24),
	("(/ 4)", 0.25),
	("(/ 12 2 3)", 2),
	("(mod 7 3)", 1),
	("(mod -7 3)", 2),
	("(pow 2 10)", 1024),
	("(= 1 1 1)", True),
	("(= 1 2)", False),
	("(!= 1 2)", True),
	("(!= 1 2 1)", True),
	("(!= 1 2 2)", False),
	("(< 1 2 3)", True),
	("(< 1 3 2)", False),
	("(>= 3 3 1)", True),
	("(< \"a\" \"b\")", True),
])
def test_arithmetic_and_comparison (evaluate_source, source, expected):

	"""Variadic arithmetic and chained comparisons."""

	assert evaluate_source(source) == expected


def test_division_by_zero (evaluate_source):

	"""Dividing by zero is an evaluation error, not a Python crash."""

	with pytest.raises(lispbeat.errors.InvalidArgument, match="Division by zero"):
		evaluate_source("(/ 1 0)")

	with pytest.raises(lispbeat.errors.InvalidArgument, match="Division by zero"):
		evaluate_source("(mod 1 0)")


@pytest.mark.parametrize("source, message", [
	("(pow 0 -1)", "negative power"),
	("(pow 10.0 400)", "too large"),
	("(pow -8 0.5)", "no real result"),
])
def test_pow_errors (evaluate_source, source, message):

	"""pow failures are evaluation errors, and never produce complex numbers."""

	with pytest.raises(lispbeat.errors.InvalidArgument, match=message):
		evaluate_source(source)


def test_arithmetic_rejects_non_numbers (evaluate_source):

	"""Strings and booleans are not numbers for arithmetic."""

	with pytest.raises(lispbeat.errors.InvalidArgument):
		evaluate_source('(+ 1 "2")')

	with pytest.raises(lispbeat.errors.InvalidArgument):
		evaluate_source("(+ 1 true)")

	with pytest.raises(lispbeat.errors.InvalidArgument):
		evaluate_source("(-)")


def test_ordering_rejects_mixed_types (evaluate_source):

	"""< needs all numbers or all strings."""

	with pytest.raises(lispbeat.errors.InvalidArgument):
		evaluate_source('(< 1 "2")')


def test_constants (evaluate_source):

	"""true and false are bound globally."""

	assert evaluate_source("true") is True
	assert evaluate_source("false") is False


def test_list (evaluate_source):

	"""list collects evaluated values into a tuple."""

	assert evaluate_source("(list 1 (+ 1 1) \"x\")") == (1, 2, "x")
	assert evaluate_source("(list)") == ()


def test_print (evaluate_source, capsys):

	"""print writes its arguments and returns the last one."""

	result = evaluate_source('(print "tempo" 120)')

	assert result == 120
	assert capsys.readouterr().out == "tempo 120\n"


def test_primitive_repr (env):

	"""Primitives describe themselves by name."""

	assert repr(env.lookup("+")) == "#<primitive +>"


def test_global_bindings_cover_music_constructors ():

	"""Every music constructor is registered and accepts named arguments."""

	bindings = lispbeat.primitives.global_bindings()

	for name in ("note", "chord", "sequence", "parallel", "beat-machine", "drum-machine", "arrangement", "track", "step", "effect"):
		assert bindings[name].accepts_named

	assert not bindings["+"].accepts_named


# ─── note / chord / sequence / parallel ──────────────────────────────


def test_note_named_arguments (evaluate_source):

	"""Named arguments override defaults; unnamed ones keep them."""

	note = evaluate_source('(note "C4" :velocity 0.9)')

	assert note == lispbeat.events.Note(pitch="C4", duration=1, velocity=0.9, instrument="default")
	assert note.kind == "note"


def test_note_duration_and_instrument (evaluate_source):

	"""Duration is the second positional argument."""

	note = evaluate_source('(note "E4" 0.5 :instrument "pluck")')

	assert note.duration == 0.5
	assert note.instrument == "pluck"


def test_note_accepts_numeric_pitch (evaluate_source):

	"""Numeric pitches are semitone offsets and stay numbers."""

	assert evaluate_source("(note 7)").pitch == 7


def test_note_requires_pitch (evaluate_source):

	"""A note with no pitch is an error."""

	with pytest.raises(lispbeat.errors.InvalidArgument):
		evaluate_source("(note)")


def test_unknown_named_arguments_are_ignored (evaluate_source):

	"""Music constructors ignore keys they do not use."""

	assert evaluate_source('(note "C4" :colour "red")') == evaluate_source('(note "C4")')


def test_chord (evaluate_source):

	"""A chord takes a quoted list of pitches."""

	chord = evaluate_source("(chord '(\"C4\" \"E4\" \"G4\") 2)")

	assert chord.notes == ("C4", "E4", "G4")
	assert chord.duration == 2


def test_sequence_and_parallel (evaluate_source):

	"""Containers keep their children in order."""

	result = evaluate_source('(sequence (note "C4") (parallel (note "E4") (note "G4")))')

	assert isinstance(result, lispbeat.events.Sequence)
	assert result.events[0].pitch == "C4"
	assert isinstance(result.events[1], lispbeat.events.Parallel)
	assert [event.pitch for event in result.events[1].events] == ["E4", "G4"]


def test_sequence_rejects_non_events (evaluate_source):

	"""Containers only hold music events."""

	with pytest.raises(lispbeat.errors.InvalidArgument):
		evaluate_source("(sequence 1 2)")


def test_functions_build_music (evaluate_source):

	"""Closures can generate descriptors."""

	source = """
	(let '([bass (lambda (p) (note p 0.5 :instrument "monosynth"))])
	  (sequence (bass "C2") (bass "G2")))
	"""

	result = evaluate_source(source)

	assert [event.pitch for event in result.events] == ["C2", "G2"]
	assert all(event.instrument == "monosynth" for event in result.events)


# ─── beat-machine ────────────────────────────────────────────────────


def test_beat_machine (evaluate_source):

	"""Pattern, sounds and named tempo/swing are captured."""

	machine = evaluate_source("(beat-machine \"x..X\" '(\"kick\" \"clap\") :tempo 90 :swing 0.5)")

	assert machine == lispbeat.events.BeatMachine(pattern="x..x", sounds=("kick", "clap"), tempo=90, swing=0.5)
	assert machine.kind == "beatMachine"


def test_beat_machine_single_sound (evaluate_source):

	"""A single sound need not be wrapped in a list."""

	assert evaluate_source('(beat-machine "x." "kick")').sounds == ("kick",)


def test_beat_machine_bad_pattern (evaluate_source):

	"""Only x and . are allowed in a pattern."""

	with pytest.raises(lispbeat.errors.InvalidArgument, match="may only contain"):
		evaluate_source('(beat-machine "x-x" "kick")')


# ─── drum-machine / arrangement / track / step / effect ──────────────


END_TO_END = """
(drum-machine :tempo 100 :signature 4
  (arrangement :active 1 :bars 1
    (track "kick" '((step 1)(step 0)(step 1)(step 0)))))
"""


def test_drum_machine_end_to_end (evaluate_source):

	"""A full drum machine evaluates to the expected descriptor tree."""

	machine = evaluate_source(END_TO_END)

	assert machine.kind == "drumMachine"
	assert machine.tempo == 100
	assert machine.signature == 4
	assert len(machine.arrangements) == 1

	arrangement = machine.arrangements[0]

	assert arrangement.active is True
	assert arrangement.bars == 1
	assert len(arrangement.tracks) == 1

	track = arrangement.tracks[0]

	assert track.sound_name == "kick"
	assert [step.active for step in track.steps] == [True, False, True, False]


def test_drum_machine_name (evaluate_source):

	"""An optional leading string names the machine."""

	machine = evaluate_source('(drum-machine "groove" (arrangement (track "kick" \'((step 1)))))')

	assert machine.name == "groove"
	assert len(machine.arrangements) == 1


def test_drum_machine_validation (evaluate_source):

	"""Only arrangements go in a drum machine, and tempo must be positive."""

	with pytest.raises(lispbeat.errors.InvalidArgument):
		evaluate_source('(drum-machine (note "C4"))')

	with pytest.raises(lispbeat.errors.InvalidArgument):
		evaluate_source("(drum-machine :tempo 0)")

	with pytest.raises(lispbeat.errors.InvalidArgument):
		evaluate_source("(drum-machine :signature 3.5)")


def test_counts_must_be_finite (evaluate_source):

	"""Infinite and NaN counts are rejected like any other bad count."""

	huge = "(* (pow 10.0 300) (pow 10.0 300))"

	with pytest.raises(lispbeat.errors.InvalidArgument, match="positive whole number"):
		evaluate_source(f"(track \"kick\" '() :time {huge})")

	with pytest.raises(lispbeat.errors.InvalidArgument, match="positive whole number"):
		evaluate_source(f"(arrangement :bars (- {huge} {huge}))")


def test_track_bars_inheritance (evaluate_source):

	"""Tracks without :bars take the arrangement's; explicit values win."""

	arrangement = evaluate_source("""
	(arrangement :bars 3
	  (track "kick" '((step 1)))
	  (track "snare" '((step 1)) :bars 1))
	""")

	kick, snare = arrangement.tracks

	assert lispbeat.events.effective_bars(kick, arrangement) == 3
	assert lispbeat.events.effective_bars(snare, arrangement) == 1


def test_track_named_arguments (evaluate_source):

	"""Track options are read from named arguments."""

	track = evaluate_source("(track \"hihat\" '((step 1)) :active 0 :time 8 :volume -6)")

	assert track.active is False
	assert track.time == 8
	assert track.volume == -6
	assert track.bars is None


def test_active_flag_requires_exactly_one (evaluate_source):

	"""Only the value 1 switches a flag on."""

	steps = evaluate_source("(track \"kick\" '((step 1) (step 0) (step 2) (step 1.0)))").steps

	assert [step.active for step in steps] == [True, False, False, True]


def test_step_named_arguments (evaluate_source):

	"""Step pitch, volume and duration have defaults and can be overridden."""

	assert evaluate_source("(step 1)") == lispbeat.events.Step(active=True, pitch=0, volume=0, duration=0.25)
	assert evaluate_source("(step 1 :pitch 12 :volume -3 :duration 0.5)") == lispbeat.events.Step(True, 12, -3, 0.5)


def test_track_steps_see_lexical_scope (evaluate_source):

	"""Quoted step forms are evaluated in the caller's environment."""

	track = evaluate_source("(let '([accent 4]) (track \"snare\" '((step 1 :volume accent))))")

	assert track.steps[0].volume == 4


def test_track_accepts_evaluated_step_list (evaluate_source):

	"""An evaluated list of steps works as well as a quoted one."""

	track = evaluate_source('(track "kick" (list (step 1) (step 0)))')

	assert [step.active for step in track.steps] == [True, False]


def test_track_requires_step_list (evaluate_source):

	"""The second argument must be a list of steps."""

	with pytest.raises(lispbeat.errors.InvalidTrackSteps):
		evaluate_source('(track "kick")')

	with pytest.raises(lispbeat.errors.InvalidTrackSteps):
		evaluate_source('(track "kick" 5)')

	with pytest.raises(lispbeat.errors.InvalidTrackSteps):
		evaluate_source("(track \"kick\" '(1 2))")


def test_arrangement_rejects_non_tracks (evaluate_source):

	"""Arrangements only hold tracks."""

	with pytest.raises(lispbeat.errors.InvalidArgument):
		evaluate_source("(arrangement (step 1))")


def test_arrangement_options (evaluate_source):

	"""Arrangement flags, volume and name."""

	arrangement = evaluate_source('(arrangement :active 0 :volume 2 :name "verse")')

	assert arrangement.active is False
	assert arrangement.volume == 2
	assert arrangement.name == "verse"
	assert arrangement.tracks == ()


def test_effect_wraps_target (evaluate_source):

	"""The last argument is the target; the rest are parameters."""

	effect = evaluate_source('(effect "delay" 0.25 0.5 (step 1))')

	assert effect.effect_type == "delay"
	assert effect.params == (0.25, 0.5)
	assert effect.target == lispbeat.events.Step(active=True)


def test_effect_inside_track (evaluate_source):

	"""Tracks may contain effect-wrapped steps."""

	track = evaluate_source("(track \"snare\" '((step 1) (effect \"reverb\" 0.3 (step 1))))")

	assert isinstance(track.steps[1], lispbeat.events.Effect)


def test_effect_requires_event_target (evaluate_source):

	"""Effects need a music event to wrap."""

	with pytest.raises(lispbeat.errors.InvalidArgument):
		evaluate_source('(effect "delay" 0.5)')

	with pytest.raises(lispbeat.errors.InvalidArgument):
		evaluate_source('(effect "delay")')


def test_numeric_strings_are_coerced (evaluate_source):

	"""Numbers given as strings are accepted where a number is expected."""

	assert evaluate_source('(step 1 :volume "-2.5")').volume == -2.5


def test_invalid_number_reports_where (evaluate_source):

	"""Conversion errors name the argument that was wrong."""

	with pytest.raises(lispbeat.errors.InvalidArgument, match="step :volume"):
		evaluate_source('(step 1 :volume "loud")')
