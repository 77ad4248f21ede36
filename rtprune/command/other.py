from rtprune.command.command import CommandOutput, Command


class InvalidCommandOutput(CommandOutput):
    def dry_run_display(self):
        raise NotImplementedError

    def display(self):
        print("Invalid command! See 'rtprune --help' for the available commands.")


class InvalidCommand(Command):
    def dry_run(self) -> CommandOutput:
        raise NotImplementedError

    def run(self) -> CommandOutput:
        return InvalidCommandOutput()
