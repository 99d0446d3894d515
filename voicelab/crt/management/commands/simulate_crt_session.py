"""Management command to run a scripted voice CRT session end to end."""
import json

from django.core.management.base import BaseCommand
from django.core.management.base import CommandError

from voicelab.crt.helpers.capture import ScriptedSpeechCapture
from voicelab.crt.helpers.capture import UnavailableSpeechCapture
from voicelab.crt.helpers.questions import QUESTION_BANK
from voicelab.crt.helpers.result_sink import HttpResultSink
from voicelab.crt.helpers.result_sink import InMemoryResultSink
from voicelab.crt.helpers.scheduler import ManualScheduler
from voicelab.crt.helpers.session import CRTSession
from voicelab.crt.helpers.session import MissingSessionIdentifiers
from voicelab.crt.helpers.trial import EmptyAnswer
from voicelab.crt.helpers.trial import TrialTiming
from voicelab.crt.registry import TEMPLATE_REGISTRY

# Spoken answers are scripted to land this long after recording starts.
SCRIPTED_SPEECH_MS = 1200
SCRIPTED_CONFIDENCE = 0.9


class Command(BaseCommand):
    help = "Run a scripted voice CRT session on a virtual clock and print the summary."

    def add_arguments(self, parser):
        parser.add_argument("--experiment-id", default="simulation")
        parser.add_argument("--participant-id", default="simulated-participant")
        parser.add_argument(
            "--answers",
            nargs="*",
            default=None,
            help="One answer per question. Defaults to the canonical answers.",
        )
        parser.add_argument(
            "--voice",
            action="store_true",
            help="Answer through the scripted recognizer instead of typing.",
        )
        parser.add_argument(
            "--post",
            action="store_true",
            help="Send each trial to VOICE_RESPONSES_URL instead of keeping it in memory.",
        )
        parser.add_argument("--json", action="store_true", help="Print the full report as JSON.")

    def handle(self, *args, **options):
        questions = QUESTION_BANK
        answers = options["answers"] or [q.correct_answer for q in questions]
        if len(answers) != len(questions):
            raise CommandError(f"Expected {len(questions)} answers, got {len(answers)}.")

        scheduler = ManualScheduler()
        timing = TrialTiming.from_settings()
        if options["voice"]:
            adapter = ScriptedSpeechCapture(
                scheduler,
                scripts=[
                    [
                        {
                            "type": "update",
                            "after_ms": SCRIPTED_SPEECH_MS,
                            "transcript": answer,
                            "confidence": SCRIPTED_CONFIDENCE,
                        }
                    ]
                    for answer in answers
                ],
            )
        else:
            adapter = UnavailableSpeechCapture()
        sink = HttpResultSink() if options["post"] else InMemoryResultSink()

        reports = []
        try:
            session = CRTSession(
                options["experiment_id"],
                options["participant_id"],
                scheduler,
                questions=questions,
                adapter=adapter,
                sink=sink,
                timing=timing,
                on_complete=reports.append,
            )
        except MissingSessionIdentifiers as exc:
            raise CommandError(str(exc)) from exc

        template = TEMPLATE_REGISTRY["voice-crt"]
        self.stdout.write(
            f"{template['full_name']} ({template['language']}, {len(questions)} questions, "
            f"{'voice' if options['voice'] else 'typed'} answers)"
        )

        machine = session.machine
        machine.accept_consent()
        machine.start_experiment()
        scheduler.advance(timing.ready_pause_ms)
        for answer in answers:
            scheduler.advance(timing.reading_interval_ms)
            try:
                if machine.fallback_mode:
                    machine.submit(answer)
                else:
                    machine.start_recording()
                    scheduler.advance(SCRIPTED_SPEECH_MS)
                    machine.stop_recording()
                    machine.submit()
            except EmptyAnswer as exc:
                machine.teardown()
                raise CommandError(f"Trial {machine.trial_index + 1}: {exc}") from exc
            result = machine.current_result
            self.stdout.write(
                f"Trial {result.trial_index + 1}: {result.transcript!r} "
                f"({'correct' if result.is_correct else 'incorrect'}, "
                f"confidence {result.transcript_confidence:.2f}, {result.reaction_time_ms} ms)"
            )
            scheduler.advance(timing.feedback_interval_ms)
        machine.teardown()

        if not reports:
            raise CommandError("Session did not complete.")
        report = reports[0]
        summary = report["summary"]
        if options["json"]:
            printable = dict(report, results=[session.payload_for(r) for r in report["results"]])
            self.stdout.write(json.dumps(printable, indent=2))
        self.stdout.write(
            self.style.SUCCESS(
                f"Done: {summary['correct_answers']}/{summary['total_trials']} correct "
                f"({summary['accuracy']}%), mean RT {summary['average_reaction_time']} ms."
            )
        )
