from django.core.management.base import BaseCommand, CommandError

from accounts.business_context import get_business_for_user
from accounts.models import User
from ai_features.exceptions import AssistantError
from ai_features.services import ChatOrchestrator, ChatTurn, reconcile_pending
from ai_features.streaming import EVENT_ERROR, EVENT_FINISH, EVENT_START, EVENT_TEXT_DELTA


class Command(BaseCommand):
    help = 'Chat with the store assistant from the terminal. Pass --message for a single turn, otherwise an interactive session starts (empty line quits).'

    def add_arguments(self, parser):
        parser.add_argument('--owner', type=str, required=True, help='Email of the store owner')
        parser.add_argument('--message', type=str, help='Send one message and exit')

    def handle(self, *args, **options):
        user = User.objects.filter(email=options['owner']).first()
        if user is None:
            raise CommandError(f'No user with email "{options["owner"]}"')

        business = get_business_for_user(user)
        if business is None:
            raise CommandError('This user has not created a store yet')

        orchestrator = ChatOrchestrator(business)
        session = orchestrator.conversation.get_or_create_session()
        self.stdout.write(f'Chat {session.id} with {orchestrator.assembler.assistant_name} ({business.name})')

        if options.get('message'):
            self.run_turn(orchestrator, session, options['message'])
            return

        while True:
            try:
                text = input('> ').strip()
            except EOFError:
                break
            if not text:
                break
            self.run_turn(orchestrator, session, text)

    def run_turn(self, orchestrator, session, text):
        # Shown before the server confirms it; settled against the stored log below
        pending = [ChatTurn.user(text)]
        self.stdout.write(self.style.HTTP_INFO(f'you: {text}'))

        try:
            prepared = orchestrator.prepare_turn(text, chat_id=session.id)
        except AssistantError as e:
            self.stdout.write(self.style.ERROR(f'Message not sent: {e}'))
            return

        for event in orchestrator.stream(prepared):
            if event['type'] == EVENT_START:
                self.stdout.write(f'[{event["grounding"]}] ', ending='')
            elif event['type'] == EVENT_TEXT_DELTA:
                self.stdout.write(event['delta'], ending='')
                self.stdout.flush()
            elif event['type'] == EVENT_FINISH:
                self.stdout.write('')
            elif event['type'] == EVENT_ERROR:
                self.stdout.write('')
                self.stdout.write(self.style.ERROR(event['message']))

        confirmed = orchestrator.conversation.history_turns(session, limit=orchestrator.history_limit)
        pending = reconcile_pending(confirmed, pending)
        for turn in pending:
            self.stdout.write(self.style.WARNING(f'not saved: {turn.text}'))
