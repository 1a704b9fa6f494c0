import asyncio

from config.settings import AppSettings
from persistence.checkpoints import open_checkpointer
from registration.collaborators import SimulatedOtpProvider, SimulatedStepSubmitter
from registration.graph import RegistrationGraphFactory
from registration.renderer import render_step
from registration.session import SessionRegistry
from registration.validator import RegistrationValidator


async def run_demo():
    settings = AppSettings.from_env()

    events = [
        ("input", "aadhaar", "12345"),
        ("input", "aadhaar", "123456789012"),
        ("send_otp",),
        ("input", "entrepreneurName", "Khushi"),
        ("input", "consent", True),
        ("send_otp",),
        ("input", "otp", "123456"),
        ("advance",),
        ("input", "pan", "ABCDE1234F"),
        ("input", "panName", "Khushi"),
        ("submit",),
    ]

    factory = RegistrationGraphFactory(
        RegistrationValidator(),
        SimulatedOtpProvider(delay=0.2),
        SimulatedStepSubmitter(delay=0.2),
        timeout=settings.collaborator_timeout,
    )

    async with open_checkpointer(settings) as checkpointer:
        graph = factory.compile(checkpointer=checkpointer)
        registry = SessionRegistry(graph, checkpointer, settings.encrypt_keys)
        session = registry.create()

        for i, event in enumerate(events, 1):
            name, *args = event
            handler = getattr(session, "input" if name == "input" else name)
            state = await handler(*args)
            print(f"\nEVENT #{i}: {name} {args}")
            print("phase:", state.phase.value)
            print("errors:", {k: v for k, v in state.errors.items() if v})
            if state.notice:
                print("notice:", state.notice)

        view = render_step(session.state)
        print("\nFinal view:", view.badge, "-", view.title)

        hist = [c async for c in graph.aget_state_history(session.config)]
        print(f"Checkpoint count for thread_id={session.session_id}: {len(hist)}")

        await registry.close(session.session_id)


if __name__ == "__main__":
    asyncio.run(run_demo())
