"""Run the default workflow: python -m modelkit"""

from modelkit.config import WorkflowConfig
from modelkit.workflow import run_workflow


def main():
    config = WorkflowConfig()
    run_workflow(config)


if __name__ == '__main__':
    main()
